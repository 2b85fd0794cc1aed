from __future__ import annotations

import logging

from ..models.change_record import ChangeRecord
from .base import EditOutcome, FieldEditor

"""Checkbox editor.

QVET keeps a hidden ``{id}_hidden`` input with the logical value next to each
checkbox; both must agree or the save posts the stale value.
"""

__all__ = [
    "TRUTHY_VALUES",
    "is_truthy",
    "CheckboxEditor",
]

logger = logging.getLogger(__name__)

TRUTHY_VALUES = frozenset({"si", "sí", "1", "true"})


def is_truthy(value: str) -> bool:
    return value.strip().lower() in TRUTHY_VALUES


class CheckboxEditor(FieldEditor):
    def apply(self, change: ChangeRecord) -> EditOutcome:
        descriptor = change.descriptor
        selector = descriptor.selector or ""
        desired = is_truthy(change.new_value)

        current = self.surface.read_checkbox(selector)
        if current is None:
            return EditOutcome.failure(f"checkbox not found: {selector}")

        if current != desired:
            self.surface.click_checkbox(selector)
            after = self.surface.read_checkbox(selector)
        else:
            # already in the desired state: no toggle
            after = current

        if descriptor.mirror_selector:
            mirrored = self.surface.set_mirror_value(descriptor.mirror_selector, "true" if desired else "false")
            if not mirrored:
                logger.debug(f"no mirror field for {selector}")

        if after != desired:
            return EditOutcome.verify_failed(
                f"checkbox {descriptor.field} is {after} after toggle, expected {desired}",
                actual_value=after,
            )
        return EditOutcome.success(actual_value=after)
