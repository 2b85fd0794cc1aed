from __future__ import annotations

from ..models.change_record import ChangeRecord
from .base import EditOutcome, FieldEditor

__all__ = [
    "TextEditor",
    "TextareaEditor",
]


class TextEditor(FieldEditor):
    """Select-all + type. The UI gives no reliable signal to verify against."""

    multiline = False

    def apply(self, change: ChangeRecord) -> EditOutcome:
        selector = change.descriptor.selector
        if not selector:
            return EditOutcome.failure(f"no selector for {change.descriptor.field}")
        if self.surface.replace_text(selector, change.new_value, multiline=self.multiline):
            return EditOutcome.success()
        return EditOutcome.failure(f"input not found: {selector}")


class TextareaEditor(TextEditor):
    multiline = True
