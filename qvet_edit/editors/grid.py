from __future__ import annotations

import logging
import math
from typing import Any

from ..models.change_record import ChangeRecord
from ..registry.field_map import FieldRegistry, GridSpec
from ..services.retry import AttemptResult, run_with_retry
from ..surface.base import LiveSurface
from .base import EditOutcome, EditorSettings, FieldEditor, format_number, parse_number

"""Nested grid cell editor (warehouse / tariff grids).

interactive (default): click the cell, confirm the edit input appeared,
select-all + type + Tab, then re-read the row object. Click targeting in a
scrolling grid is flaky, so the whole sequence is retried under
settings.grid_retry (3 attempts by default).

model: set the value on the row object directly and read it back. Faster,
but dependent UI (totals, dirty markers) may not refresh.
"""

__all__ = [
    "values_match",
    "GridCellEditor",
]

logger = logging.getLogger(__name__)


def values_match(actual: Any, desired: float) -> bool:
    if actual is None:
        return False
    return math.isclose(parse_number(actual), desired, rel_tol=1e-9, abs_tol=1e-6)


class GridCellEditor(FieldEditor):
    def __init__(self, surface: LiveSurface, settings: EditorSettings, registry: FieldRegistry) -> None:
        super().__init__(surface, settings)
        self.registry = registry

    def apply(self, change: ChangeRecord) -> EditOutcome:
        address = change.descriptor.grid
        if address is None:
            return EditOutcome.failure(f"no grid address for {change.column}")
        spec = self.registry.grid_spec(address.grid)
        column_index = spec.index_of(address.column)
        if column_index is None:
            return EditOutcome.failure(f"column {address.column} is not editable in {spec.key}")

        row_keys = self.surface.grid_row_keys(spec)
        if row_keys is None:
            return EditOutcome.failure(f"grid not found: {spec.selector}")
        row_key = next((k for k in row_keys if address.row_key.upper() in k.upper()), None)
        if row_key is None:
            return EditOutcome.failure(
                f'row "{address.row_key}" not found in {spec.key} (rows: {", ".join(row_keys)})'
            )

        desired = parse_number(change.new_value)
        if self.settings.grid_strategy == "model":
            return self._apply_model(spec, row_key, address.column, desired)
        return self._apply_interactive(spec, row_key, address.column, column_index, desired)

    def _apply_model(self, spec: GridSpec, row_key: str, column: str, desired: float) -> EditOutcome:
        self.surface.grid_set_model_value(spec, row_key, column, desired)
        actual = self.surface.grid_read_value(spec, row_key, column)
        if values_match(actual, desired):
            return EditOutcome.success(actual_value=actual)
        return EditOutcome.verify_failed(
            f"{spec.key}[{row_key}].{column} = {actual}, expected {format_number(desired)}",
            actual_value=actual,
        )

    def _apply_interactive(
        self, spec: GridSpec, row_key: str, column: str, column_index: int, desired: float
    ) -> EditOutcome:
        text = format_number(desired)

        def attempt(attempt_no: int) -> AttemptResult[Any]:
            if not self.surface.grid_click_cell(spec, row_key, column_index):
                return AttemptResult(ok=False, error=f"cell {spec.key}[{row_key}] col {column_index} not clickable")
            if not self.surface.grid_edit_input_active(spec, self.settings.edit_mode_wait_seconds):
                return AttemptResult(ok=False, error="edit mode not entered")
            self.surface.grid_type_and_commit(text)
            actual = self.surface.grid_read_value(spec, row_key, column)
            if not values_match(actual, desired):
                return AttemptResult(ok=False, value=actual, error=f"stored value {actual}, expected {text}")
            return AttemptResult(ok=True, value=actual)

        outcome = run_with_retry(
            attempt,
            self.settings.grid_retry,
            sleep=self.settings.sleep,
            label=f"{spec.key}[{row_key}].{column}",
        )
        if outcome.ok:
            if outcome.attempts > 1:
                logger.debug(f"{spec.key}[{row_key}].{column} succeeded on attempt {outcome.attempts}")
            return EditOutcome.success(actual_value=outcome.value)
        return EditOutcome.failure(
            f"{spec.key}[{row_key}].{column}: failed after {outcome.attempts} attempts ({outcome.error})",
            actual_value=outcome.value,
        )
