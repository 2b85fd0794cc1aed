# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from qvet_edit.editors.base import EditorSettings, parse_number
from qvet_edit.logging.init import reset_logging
from qvet_edit.registry.field_map import GRID_SPECS, GridSpec
from qvet_edit.services.retry import RetryPolicy
from qvet_edit.surface.base import DropdownOption


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """base_url: https://go.qvet.net
home_path: /Home/Index
headless: true
report_directory: reports
log_directory: logs
baseline_sheet: Original
edited_sheet: Editar
timeouts:
  page_load: 30
  element: 5
  open_entity: 10
cascade_settle_seconds: 0
save_settle_seconds: 0
grid_strategy: interactive
grid_retry:
  max_attempts: 3
  backoff_seconds: 0
  backoff_factor: 1
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "qvet.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def build_workbook(
    path: Path,
    header: list[str],
    baseline_rows: list[list[Any]],
    edited_rows: list[list[Any]],
    *,
    baseline_sheet: str = "Original",
    edited_sheet: str = "Editar",
    edited_header: list[str] | None = None,
) -> Path:
    """Write a two-sheet workbook with pandas + openpyxl."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(baseline_rows, columns=header).to_excel(writer, sheet_name=baseline_sheet, index=False)
        pd.DataFrame(edited_rows, columns=edited_header or header).to_excel(
            writer, sheet_name=edited_sheet, index=False
        )
    return path


@pytest.fixture()
def make_workbook(temp_workdir: Path) -> Callable[..., Path]:
    def _make(header, baseline_rows, edited_rows, name: str = "edits.xlsx", **kwargs) -> Path:
        return build_workbook(temp_workdir / "data" / name, header, baseline_rows, edited_rows, **kwargs)

    return _make


@pytest.fixture()
def editor_settings() -> EditorSettings:
    return EditorSettings(
        cascade_settle_seconds=0.0,
        option_wait_seconds=0.0,
        edit_mode_wait_seconds=0.0,
        grid_retry=RetryPolicy(max_attempts=3, backoff_seconds=0.0, backoff_factor=1.0),
        sleep=lambda s: None,
    )


class FakeSurface:
    """In-memory stand-in for the QVET article form.

    State is page-level (shared by every article) which is enough for the
    session and editor tests. ``events`` records the interaction order.
    """

    def __init__(self) -> None:
        self.known_entities: set[int] = set()
        self.sections: set[str] = {"Datos generales", "Precios compras / ventas", "Almacenes", "Observaciones"}
        self.events: list[tuple[str, Any]] = []
        self.open_entity_id: int | None = None
        self.open_raises: Exception | None = None
        self.save_ok = True
        self.save_raises: Exception | None = None
        self.close_raises: Exception | None = None

        self.texts: dict[str, str] = {}
        self.checkboxes: dict[str, bool] = {}
        self.checkbox_stuck = False
        self.mirrors: dict[str, str] = {}
        self.numerics: dict[str, float] = {}

        self.dropdowns: dict[str, list[tuple[str, str]]] = {}
        self.selected: dict[str, int] = {}
        # child selector -> (parent selector, parent value -> options)
        self.cascades: dict[str, tuple[str, dict[str, list[tuple[str, str]]]]] = {}
        self.popup_clickable = True
        self.select_ignored: set[str] = set()

        self.grids: dict[str, dict[str, dict[str, Any]]] = {}
        self.grid_click_failures = 0
        self.grid_commit_failures = 0
        self._active_cell: tuple[str, str, int] | None = None

    # -- entity session
    def open_entity(self, entity_id: int) -> bool:
        self.events.append(("open", entity_id))
        if self.open_raises is not None:
            raise self.open_raises
        if entity_id not in self.known_entities:
            return False
        self.open_entity_id = entity_id
        return True

    def select_section(self, name: str) -> bool:
        self.events.append(("section", name))
        return any(name.lower() in s.lower() for s in self.sections)

    def save(self) -> bool:
        self.events.append(("save", self.open_entity_id))
        if self.save_raises is not None:
            raise self.save_raises
        return self.save_ok

    def close_entity(self) -> None:
        self.events.append(("close", self.open_entity_id))
        self.open_entity_id = None
        if self.close_raises is not None:
            raise self.close_raises

    # -- text
    def replace_text(self, selector: str, value: str, *, multiline: bool = False) -> bool:
        if selector not in self.texts:
            return False
        self.events.append(("text", selector))
        self.texts[selector] = value
        return True

    # -- checkbox
    def read_checkbox(self, selector: str) -> bool | None:
        return self.checkboxes.get(selector)

    def click_checkbox(self, selector: str) -> None:
        self.events.append(("click", selector))
        if not self.checkbox_stuck:
            self.checkboxes[selector] = not self.checkboxes[selector]

    def set_mirror_value(self, selector: str, value: str) -> bool:
        self.mirrors[selector] = value
        return True

    # -- dropdown
    def _options(self, selector: str) -> list[DropdownOption]:
        return [DropdownOption(i, t, v) for i, (t, v) in enumerate(self.dropdowns.get(selector, []))]

    def _select(self, selector: str, index: int) -> None:
        self.events.append(("select", selector, index))
        if selector in self.select_ignored:
            return
        self.selected[selector] = index

    def dropdown_options(self, selector: str) -> list[DropdownOption] | None:
        if selector not in self.dropdowns:
            return None
        return self._options(selector)

    def wait_dropdown_options(self, selector: str, timeout: float) -> bool:
        self.events.append(("wait_options", selector))
        return bool(self.dropdowns.get(selector))

    def dropdown_select_index(self, selector: str, index: int) -> bool:
        if selector not in self.dropdowns or not 0 <= index < len(self.dropdowns[selector]):
            return False
        self._select(selector, index)
        return True

    def dropdown_open(self, selector: str) -> bool:
        self.events.append(("open_popup", selector))
        return selector in self.dropdowns

    def dropdown_click_option(self, selector: str, index: int) -> bool:
        if not self.popup_clickable:
            return False
        self._select(selector, index)
        return True

    def dropdown_current(self, selector: str) -> DropdownOption | None:
        if selector not in self.dropdowns:
            return None
        idx = self.selected.get(selector, -1)
        options = self._options(selector)
        if not 0 <= idx < len(options):
            return DropdownOption(-1, "", "")
        return options[idx]

    def dropdown_copy_value(self, source_selector: str, target_selector: str) -> bool:
        self.events.append(("copy", source_selector, target_selector))
        current = self.dropdown_current(source_selector)
        self.mirrors[target_selector] = current.value if current else ""
        return True

    def dropdown_reload_dependents(self, selector: str) -> int:
        self.events.append(("reload", selector))
        current = self.dropdown_current(selector)
        reloaded = 0
        for child, (parent, by_value) in self.cascades.items():
            if parent == selector:
                self.dropdowns[child] = list(by_value.get(current.value if current else "", []))
                self.selected.pop(child, None)
                reloaded += 1
        return reloaded

    # -- grid
    def grid_row_keys(self, spec: GridSpec) -> list[str] | None:
        grid = self.grids.get(spec.key)
        return None if grid is None else list(grid)

    def grid_click_cell(self, spec: GridSpec, row_key: str, column_index: int) -> bool:
        self.events.append(("grid_click", spec.key, row_key, column_index))
        if self.grid_click_failures > 0:
            self.grid_click_failures -= 1
            self._active_cell = None
            return True  # clicked, but no editor opened
        self._active_cell = (spec.key, row_key, column_index)
        return True

    def grid_edit_input_active(self, spec: GridSpec, timeout: float) -> bool:
        return self._active_cell is not None and self._active_cell[0] == spec.key

    def grid_type_and_commit(self, text: str) -> None:
        self.events.append(("grid_type", text))
        if self._active_cell is None:
            return
        key, row_key, column_index = self._active_cell
        self._active_cell = None
        if self.grid_commit_failures > 0:
            self.grid_commit_failures -= 1
            return
        column = next(c for c, i in GRID_SPECS[key].column_index.items() if i == column_index)
        self.grids[key][row_key][column] = parse_number(text)

    def grid_read_value(self, spec: GridSpec, row_key: str, column: str) -> Any:
        return self.grids.get(spec.key, {}).get(row_key, {}).get(column)

    def grid_set_model_value(self, spec: GridSpec, row_key: str, column: str, value: float) -> Any:
        self.events.append(("grid_set", spec.key, row_key, column))
        self.grids[spec.key][row_key][column] = value
        return value

    # -- numeric
    def set_numeric(self, selector: str, value: float) -> tuple[bool, Any]:
        if selector not in self.numerics:
            return False, None
        self.numerics[selector] = value
        return True, value


@pytest.fixture()
def fake_surface() -> FakeSurface:
    return FakeSurface()
