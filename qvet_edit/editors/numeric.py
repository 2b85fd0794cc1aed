from __future__ import annotations

from ..models.change_record import ChangeRecord
from .base import EditOutcome, FieldEditor, parse_number

__all__ = [
    "NumericEditor",
]


class NumericEditor(FieldEditor):
    """Writes through the numeric widget API so its rounding/format rules apply."""

    def apply(self, change: ChangeRecord) -> EditOutcome:
        selector = change.descriptor.selector or ""
        value = parse_number(change.new_value)
        ok, actual = self.surface.set_numeric(selector, value)
        if not ok:
            return EditOutcome.failure(f"numeric input not writable: {selector}", actual_value=actual)
        return EditOutcome.success(actual_value=actual)
