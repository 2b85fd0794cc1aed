from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Field descriptor domain model.

A FieldDescriptor is the static metadata behind one workbook column: which
internal QVET field it edits, the tab (section) holding it, the widget type
and the addressing info the matching editor needs.
"""

__all__ = [
    "FieldType",
    "GridAddress",
    "FieldDescriptor",
]


class FieldType(Enum):
    """Closed set of editable widget types in the article form."""
    TEXT = "text"
    CHECKBOX = "checkbox"
    TEXTAREA = "textarea"
    DROPDOWN = "dropdown"
    GRID_CELL = "grid-cell"
    NUMERIC = "numeric"


@dataclass(frozen=True)
class GridAddress:
    """Cell inside a nested grid: grid key + row key (warehouse/tariff) + column."""
    grid: str  # "almacenes" | "tarifas"
    row_key: str  # e.g. "HARBOR", "ordinaria"
    column: str  # data model field, e.g. "StockMinimo"


@dataclass(frozen=True)
class FieldDescriptor:
    field: str  # internal QVET field name
    section: str  # tab label
    field_type: FieldType
    selector: str | None = None
    mirror_selector: str | None = None  # hidden / secondary control kept in sync
    cascade_from: str | None = None  # parent select (internal field name)
    cascade_root: bool = False
    grid: GridAddress | None = None

    @property
    def is_cascading(self) -> bool:
        return self.cascade_from is not None
