from __future__ import annotations

import contextlib
import threading
from pathlib import Path
from unittest.mock import Mock

import pytest

from qvet_edit.config.loader import AppConfig
from qvet_edit.logging.error_log import ErrorLogBuffer
from qvet_edit.models import ChangeStatus
from qvet_edit.services.orchestrator import (
    INTERRUPTED_MESSAGE,
    ProcessingError,
    analyze_workbook,
    editor_settings_from_config,
    process_edit,
)

HEADER = ["Codigo Interno", "DESCRIPCION", "ACTIVO", "Columna libre"]


@pytest.fixture()
def config() -> AppConfig:
    return AppConfig(base_url="https://go.qvet.net", cascade_settle_seconds=0, save_settle_seconds=0)


def _factory(surface):
    factory = Mock(side_effect=lambda: contextlib.nullcontext(surface))
    return factory


def test_editor_settings_from_config(config: AppConfig):
    settings = editor_settings_from_config(config)
    assert settings.cascade_settle_seconds == 0
    assert settings.option_wait_seconds == config.timeouts.option_wait
    assert settings.grid_retry is config.grid_retry


def test_analyze_workbook_plans_changes(config, make_workbook):
    path = make_workbook(
        HEADER,
        [[6242, "Pienso", "SI", "a"], ["total", "", "", ""], [7001, "Champú", "NO", "b"]],
        [[6242, "Pienso adulto", "SI", "z"], ["total", "x", "", ""], [7001, "Champú", "SI", "b"]],
    )
    analysis = analyze_workbook(config, path)
    assert [p.entity_id for p in analysis.plans] == [6242, 7001]
    assert analysis.diff.skipped_rows == (3,)
    assert analysis.diff.unmapped_columns == {"Columna libre": 1}


def test_structural_error_fails_before_the_surface_is_created(config, make_workbook, fake_surface):
    path = make_workbook(HEADER, [[1, "a", "SI", ""]], [[1, "b", "SI", ""]], edited_sheet="Otra")
    factory = _factory(fake_surface)
    with pytest.raises(ProcessingError, match="Editar"):
        process_edit(config, path, factory)
    factory.assert_not_called()


def test_missing_id_column_is_a_processing_error(config, make_workbook, fake_surface):
    path = make_workbook(["Nombre", "DESCRIPCION"], [["x", "a"]], [["x", "b"]])
    with pytest.raises(ProcessingError, match="no entity id column"):
        process_edit(config, path, _factory(fake_surface))


def test_no_changes_does_not_create_a_surface(config, make_workbook, fake_surface):
    rows = [[6242, "Pienso", "SI", ""]]
    path = make_workbook(HEADER, rows, rows)
    factory = _factory(fake_surface)
    report = process_edit(config, path, factory)
    factory.assert_not_called()
    assert report.total_changes == 0
    assert report.all_succeeded
    assert report.source_file == str(path)


def test_changes_are_applied_per_entity(config, make_workbook, fake_surface, editor_settings, tmp_path):
    fake_surface.known_entities = {6242}
    fake_surface.texts['[id$="_Descripcio1"]'] = "Pienso"
    fake_surface.checkboxes['[id$="_Actiu"]'] = False
    path = make_workbook(
        HEADER,
        [[6242, "Pienso", "NO", ""], [9999, "x", "NO", ""]],
        [[6242, "Pienso adulto", "SI", ""], [9999, "y", "NO", ""]],
    )
    error_log = ErrorLogBuffer(tmp_path / "logs")
    report = process_edit(
        config, path, _factory(fake_surface), editor_settings=editor_settings, error_log=error_log
    )
    assert report.total_changes == 3
    assert report.successful == 2
    assert report.failed == 1
    assert report.by_entity[9999].failed == 1
    assert [e for e in fake_surface.events if e[0] in ("open", "close")] == [
        ("open", 6242),
        ("close", 6242),
        ("open", 9999),
    ]
    assert [r.error_type for r in error_log.records] == ["ENTITY_NOT_FOUND"]


def test_report_and_error_log_name_the_full_workbook_path(config, make_workbook, fake_surface, editor_settings, tmp_path):
    path = make_workbook(HEADER, [[9999, "x", "NO", ""]], [[9999, "y", "NO", ""]])
    error_log = ErrorLogBuffer(tmp_path / "logs")
    report = process_edit(
        config, path, _factory(fake_surface), editor_settings=editor_settings, error_log=error_log
    )
    assert report.source_file == str(path)
    assert report.source_file != path.name
    assert [r.file for r in error_log.records] == [str(path)]


def test_stop_event_skips_remaining_entities(config, make_workbook, fake_surface, editor_settings):
    fake_surface.known_entities = {1, 2}
    fake_surface.texts['[id$="_Descripcio1"]'] = ""
    path = make_workbook(HEADER, [[1, "a", "", ""], [2, "a", "", ""]], [[1, "b", "", ""], [2, "b", "", ""]])
    stop = threading.Event()
    stop.set()
    report = process_edit(config, path, _factory(fake_surface), stop_event=stop, editor_settings=editor_settings)
    assert report.interrupted
    assert report.skipped == 2
    assert all(r.status is ChangeStatus.SKIPPED and r.error == INTERRUPTED_MESSAGE for r in report.changes)
    assert not [e for e in fake_surface.events if e[0] == "open"]
    assert not report.all_succeeded


def test_stop_requested_mid_run(config, make_workbook, fake_surface, editor_settings):
    fake_surface.known_entities = {1, 2}
    fake_surface.texts['[id$="_Descripcio1"]'] = ""
    stop = threading.Event()
    original_save = fake_surface.save

    def save_then_stop():
        stop.set()
        return original_save()

    fake_surface.save = save_then_stop
    path = make_workbook(HEADER, [[1, "a", "", ""], [2, "a", "", ""]], [[1, "b", "", ""], [2, "b", "", ""]])
    report = process_edit(config, path, _factory(fake_surface), stop_event=stop, editor_settings=editor_settings)
    assert [r.status for r in report.changes] == [ChangeStatus.SUCCESS, ChangeStatus.SKIPPED]
    assert report.interrupted


def test_save_failures_reach_the_report(config, make_workbook, fake_surface, editor_settings, tmp_path: Path):
    fake_surface.known_entities = {1}
    fake_surface.texts['[id$="_Descripcio1"]'] = ""
    fake_surface.save_ok = False
    path = make_workbook(HEADER, [[1, "a", "", ""]], [[1, "b", "", ""]])
    report = process_edit(
        config, path, _factory(fake_surface), editor_settings=editor_settings, error_log=ErrorLogBuffer(tmp_path)
    )
    assert report.save_failures == (1,)
    assert report.successful == 1
