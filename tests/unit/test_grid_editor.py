from __future__ import annotations

import pytest

from qvet_edit.editors import EditorSettings, GridCellEditor
from qvet_edit.models import ChangeRecord, ChangeStatus
from qvet_edit.registry import default_registry
from qvet_edit.services.retry import RetryPolicy


def _change(column: str, new: str) -> ChangeRecord:
    return ChangeRecord(entity_id=6242, column=column, old_value="0", new_value=new, descriptor=default_registry()[column])


@pytest.fixture()
def warehouses(fake_surface):
    fake_surface.grids["almacenes"] = {
        "ALMACEN HARBOR": {"StockMinimo": 0, "StockMaximo": 0, "CompraMinima": 0},
        "ALMACEN URBAN": {"StockMinimo": 1, "StockMaximo": 4, "CompraMinima": 0},
    }
    fake_surface.grids["tarifas"] = {"Tarifa ordinaria": {"PreuUnitari": 10.0}}
    return fake_surface


def _editor(surface, settings):
    return GridCellEditor(surface, settings, default_registry())


def test_interactive_first_attempt(warehouses, editor_settings):
    outcome = _editor(warehouses, editor_settings).apply(_change("Stock_Min_Harbor", "5"))
    assert outcome.ok
    assert warehouses.grids["almacenes"]["ALMACEN HARBOR"]["StockMinimo"] == 5.0
    assert ("grid_click", "almacenes", "ALMACEN HARBOR", 4) in warehouses.events
    assert ("grid_type", "5") in warehouses.events


@pytest.mark.parametrize("failures", [1, 2])
def test_success_on_second_or_third_attempt(warehouses, editor_settings, failures):
    warehouses.grid_click_failures = failures
    outcome = _editor(warehouses, editor_settings).apply(_change("Stock_Opt_Urban", "12"))
    assert outcome.status is ChangeStatus.SUCCESS
    clicks = [e for e in warehouses.events if e[0] == "grid_click"]
    assert len(clicks) == failures + 1


def test_commit_not_stored_is_retried(warehouses, editor_settings):
    warehouses.grid_commit_failures = 2
    outcome = _editor(warehouses, editor_settings).apply(_change("Compra_Min_Harbor", "3"))
    assert outcome.ok
    assert warehouses.grids["almacenes"]["ALMACEN HARBOR"]["CompraMinima"] == 3.0


def test_three_failures_is_error(warehouses, editor_settings):
    warehouses.grid_click_failures = 3
    outcome = _editor(warehouses, editor_settings).apply(_change("Stock_Min_Harbor", "5"))
    assert outcome.status is ChangeStatus.ERROR
    assert "3 attempts" in outcome.error
    assert len([e for e in warehouses.events if e[0] == "grid_click"]) == 3


def test_retry_backoff_uses_injected_sleep(warehouses):
    sleeps: list[float] = []
    settings = EditorSettings(
        edit_mode_wait_seconds=0.0,
        grid_retry=RetryPolicy(max_attempts=3, backoff_seconds=0.5, backoff_factor=2.0),
        sleep=sleeps.append,
    )
    warehouses.grid_click_failures = 2
    assert _editor(warehouses, settings).apply(_change("Stock_Min_Harbor", "5")).ok
    assert sleeps == [0.5, 1.0]


def test_unknown_row_lists_available_rows(warehouses, editor_settings):
    outcome = _editor(warehouses, editor_settings).apply(_change("Stock_Min_Montejo", "5"))
    assert outcome.status is ChangeStatus.ERROR
    assert "MONTEJO" in outcome.error
    assert "ALMACEN HARBOR, ALMACEN URBAN" in outcome.error
    assert not [e for e in warehouses.events if e[0] == "grid_click"]


def test_grid_missing(fake_surface, editor_settings):
    outcome = _editor(fake_surface, editor_settings).apply(_change("Stock_Min_Harbor", "5"))
    assert outcome.status is ChangeStatus.ERROR
    assert "grid not found" in outcome.error


def test_model_strategy(warehouses):
    settings = EditorSettings(grid_strategy="model", sleep=lambda s: None)
    outcome = _editor(warehouses, settings).apply(_change("Tarifa_PVP", "12,5"))
    assert outcome.ok
    assert warehouses.grids["tarifas"]["Tarifa ordinaria"]["PreuUnitari"] == 12.5
    assert not [e for e in warehouses.events if e[0] == "grid_click"]
