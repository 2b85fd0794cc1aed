from __future__ import annotations

from enum import Enum

"""EntityState enum for the per-article edit session.

State transitions:
    closed → opening → open → section_selected → saving → closed
    opening → open_failed (terminal, nothing to release)
"""

__all__ = [
    "EntityState",
]


class EntityState(Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    SECTION_SELECTED = "section_selected"
    SAVING = "saving"
    OPEN_FAILED = "open_failed"
