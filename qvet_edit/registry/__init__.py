"""Static field registry (workbook column -> article form field)."""

from .field_map import COLUMN_MAP, GRID_SPECS, FieldRegistry, GridSpec, default_registry

__all__ = [
    "COLUMN_MAP",
    "GRID_SPECS",
    "FieldRegistry",
    "GridSpec",
    "default_registry",
]
