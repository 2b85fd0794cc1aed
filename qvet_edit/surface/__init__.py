"""Live surface: capability protocols and the selenium implementation."""

from .base import (
    CheckboxSurface,
    DropdownOption,
    DropdownSurface,
    EntitySurface,
    GridSurface,
    LiveSurface,
    NumericSurface,
    TextSurface,
)

__all__ = [
    "CheckboxSurface",
    "DropdownOption",
    "DropdownSurface",
    "EntitySurface",
    "GridSurface",
    "LiveSurface",
    "NumericSurface",
    "TextSurface",
]
