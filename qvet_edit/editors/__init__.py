"""Field editors, one per field type."""

from __future__ import annotations

from ..models.field_descriptor import FieldType
from ..registry.field_map import FieldRegistry
from ..surface.base import LiveSurface
from .base import EditOutcome, EditorSettings, FieldEditor, format_number, parse_number
from .checkbox import CheckboxEditor, is_truthy
from .dropdown import DropdownEditor, match_option
from .grid import GridCellEditor
from .numeric import NumericEditor
from .text import TextareaEditor, TextEditor

__all__ = [
    "CheckboxEditor",
    "DropdownEditor",
    "EditOutcome",
    "EditorSettings",
    "FieldEditor",
    "GridCellEditor",
    "NumericEditor",
    "TextEditor",
    "TextareaEditor",
    "build_editors",
    "format_number",
    "is_truthy",
    "match_option",
    "parse_number",
]


def build_editors(surface: LiveSurface, registry: FieldRegistry, settings: EditorSettings) -> dict[FieldType, FieldEditor]:
    return {
        FieldType.TEXT: TextEditor(surface, settings),
        FieldType.TEXTAREA: TextareaEditor(surface, settings),
        FieldType.CHECKBOX: CheckboxEditor(surface, settings),
        FieldType.DROPDOWN: DropdownEditor(surface, settings),
        FieldType.GRID_CELL: GridCellEditor(surface, settings, registry),
        FieldType.NUMERIC: NumericEditor(surface, settings),
    }
