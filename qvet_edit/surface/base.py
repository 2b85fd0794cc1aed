from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ..registry.field_map import GridSpec

"""Live surface contract.

The core (diff, planner, session controller, editors) only talks to these
narrow capability protocols. SeleniumSurface implements all of them against
the QVET web UI; tests use an in-memory fake.
"""

__all__ = [
    "DropdownOption",
    "EntitySurface",
    "TextSurface",
    "CheckboxSurface",
    "DropdownSurface",
    "GridSurface",
    "NumericSurface",
    "LiveSurface",
]


@dataclass(frozen=True)
class DropdownOption:
    index: int
    text: str
    value: str


@runtime_checkable
class EntitySurface(Protocol):
    def open_entity(self, entity_id: int) -> bool:
        """Search the article list and open the article; False if no row matched."""
        ...

    def select_section(self, name: str) -> bool:
        """Select a tab by case-insensitive substring match."""
        ...

    def save(self) -> bool: ...

    def close_entity(self) -> None:
        """Close the edit view and release the article lock."""
        ...


@runtime_checkable
class TextSurface(Protocol):
    def replace_text(self, selector: str, value: str, *, multiline: bool = False) -> bool: ...


@runtime_checkable
class CheckboxSurface(Protocol):
    def read_checkbox(self, selector: str) -> bool | None: ...

    def click_checkbox(self, selector: str) -> None: ...

    def set_mirror_value(self, selector: str, value: str) -> bool: ...


@runtime_checkable
class DropdownSurface(Protocol):
    def dropdown_options(self, selector: str) -> list[DropdownOption] | None: ...

    def wait_dropdown_options(self, selector: str, timeout: float) -> bool: ...

    def dropdown_select_index(self, selector: str, index: int) -> bool:
        """Data-layer select by index, then fire the change notification."""
        ...

    def dropdown_open(self, selector: str) -> bool:
        """Open the option popup with a real click (forced open as fallback)."""
        ...

    def dropdown_click_option(self, selector: str, index: int) -> bool:
        """Click the visible popup item at ``index``; False if not visible."""
        ...

    def dropdown_current(self, selector: str) -> DropdownOption | None: ...

    def dropdown_copy_value(self, source_selector: str, target_selector: str) -> bool: ...

    def dropdown_reload_dependents(self, selector: str) -> int: ...


@runtime_checkable
class GridSurface(Protocol):
    def grid_row_keys(self, spec: GridSpec) -> list[str] | None: ...

    def grid_click_cell(self, spec: GridSpec, row_key: str, column_index: int) -> bool: ...

    def grid_edit_input_active(self, spec: GridSpec, timeout: float) -> bool: ...

    def grid_type_and_commit(self, text: str) -> None:
        """Select-all in the active cell editor, type ``text``, commit with Tab."""
        ...

    def grid_read_value(self, spec: GridSpec, row_key: str, column: str) -> Any: ...

    def grid_set_model_value(self, spec: GridSpec, row_key: str, column: str, value: float) -> Any: ...


@runtime_checkable
class NumericSurface(Protocol):
    def set_numeric(self, selector: str, value: float) -> tuple[bool, Any]:
        """Set through the numeric widget API; returns (ok, widget value)."""
        ...


@runtime_checkable
class LiveSurface(EntitySurface, TextSurface, CheckboxSurface, DropdownSurface, GridSurface, NumericSurface, Protocol):
    pass
