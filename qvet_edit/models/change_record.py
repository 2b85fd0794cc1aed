from __future__ import annotations

from dataclasses import dataclass

from .field_descriptor import FieldDescriptor, FieldType

"""ChangeRecord model produced by the diff engine."""

__all__ = [
    "ChangeRecord",
]


@dataclass(frozen=True)
class ChangeRecord:
    """One field-level difference between the baseline and edited sheets.

    old_value / new_value are always normalized strings, and differ.
    row_number is the 1-based worksheet row (header = row 1).
    """
    entity_id: int
    column: str  # workbook column name (registry key)
    old_value: str
    new_value: str
    descriptor: FieldDescriptor
    row_number: int = -1

    @property
    def section(self) -> str:
        return self.descriptor.section

    @property
    def field_type(self) -> FieldType:
        return self.descriptor.field_type
