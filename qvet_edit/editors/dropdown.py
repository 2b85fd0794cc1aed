from __future__ import annotations

import logging

from ..models.change_record import ChangeRecord
from ..models.field_descriptor import FieldDescriptor
from ..surface.base import DropdownOption
from .base import EditOutcome, FieldEditor

"""Single-select (Kendo DropDownList) editor.

Strategies:
- static: data-layer select by index + change notification.
- interactive (cascade roots and dependents): real click to open the popup,
  then click the matching item, so every cascade listener fires. Dependent
  lists first wait for the parent change to settle.
"""

__all__ = [
    "match_option",
    "describe_options",
    "DropdownEditor",
]

logger = logging.getLogger(__name__)


def match_option(options: list[DropdownOption], target: str) -> DropdownOption | None:
    """Exact text (case-insensitive) or exact value first, then substring."""
    wanted = target.strip().lower()
    for opt in options:
        if opt.text.strip().lower() == wanted or opt.value == target:
            return opt
    if not wanted:
        return None
    for opt in options:
        if wanted in opt.text.lower():
            return opt
    return None


def describe_options(options: list[DropdownOption]) -> str:
    return ", ".join(o.text for o in options)


class DropdownEditor(FieldEditor):
    def apply(self, change: ChangeRecord) -> EditOutcome:
        descriptor = change.descriptor
        selector = descriptor.selector or ""
        target = change.new_value

        if descriptor.is_cascading:
            outcome = self._select_cascading(selector, target)
        elif descriptor.cascade_root:
            outcome = self._select_interactive(selector, target)
        else:
            outcome = self._select_static(selector, target)
        if not outcome.ok:
            return outcome

        if descriptor.cascade_root:
            self._propagate(descriptor)
        return self._verify(selector, target)

    def _not_found(self, selector: str, target: str, options: list[DropdownOption]) -> EditOutcome:
        return EditOutcome.failure(
            f'value "{target}" not found in {selector} ({len(options)} options: {describe_options(options)})'
        )

    def _select_static(self, selector: str, target: str) -> EditOutcome:
        options = self.surface.dropdown_options(selector)
        if options is None:
            return EditOutcome.failure(f"dropdown not found: {selector}")
        option = match_option(options, target)
        if option is None:
            return self._not_found(selector, target, options)
        if not self.surface.dropdown_select_index(selector, option.index):
            return EditOutcome.failure(f"could not select index {option.index} in {selector}")
        return EditOutcome.success(actual_value=option.text)

    def _select_interactive(self, selector: str, target: str) -> EditOutcome:
        if not self.surface.dropdown_open(selector):
            return EditOutcome.failure(f"dropdown not found: {selector}")
        options = self.surface.dropdown_options(selector)
        if options is None:
            return EditOutcome.failure(f"dropdown not found: {selector}")
        option = match_option(options, target)
        if option is None:
            return self._not_found(selector, target, options)
        if self.surface.dropdown_click_option(selector, option.index):
            return EditOutcome.success(actual_value=option.text)
        # popup item not visible: fall back to the widget API
        logger.debug(f"{selector}: popup item not visible, selecting by index")
        if not self.surface.dropdown_select_index(selector, option.index):
            return EditOutcome.failure(f"could not select index {option.index} in {selector}")
        return EditOutcome.success(actual_value=option.text)

    def _select_cascading(self, selector: str, target: str) -> EditOutcome:
        # no reliable "cascade finished" signal: settle, then wait for options
        if self.settings.cascade_settle_seconds > 0:
            self.settings.sleep(self.settings.cascade_settle_seconds)
        if not self.surface.wait_dropdown_options(selector, self.settings.option_wait_seconds):
            logger.debug(f"{selector}: option list still empty after {self.settings.option_wait_seconds}s")
        return self._select_interactive(selector, target)

    def _propagate(self, descriptor: FieldDescriptor) -> None:
        selector = descriptor.selector or ""
        if descriptor.mirror_selector:
            if not self.surface.dropdown_copy_value(selector, descriptor.mirror_selector):
                logger.debug(f"no mirror select {descriptor.mirror_selector}")
        reloaded = self.surface.dropdown_reload_dependents(selector)
        logger.debug(f"{selector}: reloaded {reloaded} dependent list(s)")

    def _verify(self, selector: str, target: str) -> EditOutcome:
        current = self.surface.dropdown_current(selector)
        if current is None:
            return EditOutcome.verify_failed(f"cannot read selection of {selector}")
        wanted = target.strip().lower()
        if current.value == target or wanted in current.text.lower():
            return EditOutcome.success(actual_value=current.text)
        return EditOutcome.verify_failed(
            f'{selector} shows "{current.text}" after selecting "{target}"', actual_value=current.text
        )
