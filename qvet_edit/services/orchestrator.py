from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from pathlib import Path

from ..config.loader import AppConfig
from ..editors import EditorSettings, build_editors
from ..excel.reader import WorkbookError, read_snapshot_pair
from ..logging.error_log import ErrorLogBuffer
from ..models.change_result import ChangeResult, ChangeStatus
from ..models.process_report import ProcessReport
from ..registry.field_map import FieldRegistry, default_registry
from ..surface.base import LiveSurface
from .diff import DiffResult, MissingIdColumnError, detect_changes
from .planner import EntityPlan, plan_changes
from .progress import ProgressTracker
from .report import build_report
from .session import EntitySessionController

"""Run orchestration: read -> diff -> plan -> apply -> report.

The workbook is read and diffed completely before the live surface is
created, so structural problems (missing sheet, header mismatch, no id
column) fail fast without launching a browser. Articles are processed one at
a time in first-seen order; ``stop_event`` is checked between articles.
"""

__all__ = [
    "ProcessingError",
    "AnalysisResult",
    "INTERRUPTED_MESSAGE",
    "editor_settings_from_config",
    "analyze_workbook",
    "process_edit",
]

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "interrupted"

SurfaceFactory = Callable[[], AbstractContextManager[LiveSurface]]


class ProcessingError(Exception):
    """Structural error that prevents a run from starting."""


@dataclass(frozen=True)
class AnalysisResult:
    diff: DiffResult
    plans: list[EntityPlan]


def editor_settings_from_config(config: AppConfig) -> EditorSettings:
    return EditorSettings(
        cascade_settle_seconds=config.cascade_settle_seconds,
        option_wait_seconds=config.timeouts.option_wait,
        edit_mode_wait_seconds=config.timeouts.edit_mode,
        grid_strategy=config.grid_strategy,
        grid_retry=config.grid_retry,
    )


def analyze_workbook(
    config: AppConfig, workbook_path: Path, registry: FieldRegistry | None = None
) -> AnalysisResult:
    """Read both sheets, diff them and plan the changes.

    Raises:
        ProcessingError: workbook unreadable / structurally invalid, or no id column
    """
    registry = registry if registry is not None else default_registry()
    try:
        baseline, edited = read_snapshot_pair(workbook_path, config.baseline_sheet, config.edited_sheet)
        diff = detect_changes(baseline, edited, registry)
    except (WorkbookError, MissingIdColumnError) as e:
        raise ProcessingError(str(e)) from e

    plans = plan_changes(diff.changes)
    logger.info(
        f"{len(diff.changes)} change(s) detected in {len(plans)} article(s) "
        f"({diff.compared_rows} rows compared)"
    )
    return AnalysisResult(diff=diff, plans=plans)


def _skipped(plan: EntityPlan) -> list[ChangeResult]:
    return [ChangeResult.from_change(c, ChangeStatus.SKIPPED, error=INTERRUPTED_MESSAGE) for c in plan.changes]


def process_edit(
    config: AppConfig,
    workbook_path: Path,
    surface_factory: SurfaceFactory,
    *,
    stop_event: threading.Event | None = None,
    registry: FieldRegistry | None = None,
    editor_settings: EditorSettings | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ProcessReport:
    """Apply every change of ``workbook_path`` through the live surface.

    Args:
        config: application config
        workbook_path: workbook with the baseline and edited sheets
        surface_factory: returns a context manager yielding a logged-in surface;
            only called when there is at least one change
        stop_event: set to request a stop between articles
        registry: column registry (default mapping table when None)
        editor_settings: editor knobs (derived from ``config`` when None)
        error_log: buffer receiving failure records

    Returns:
        ProcessReport covering every detected change

    Raises:
        ProcessingError: structural workbook error (before any surface work)
    """
    registry = registry if registry is not None else default_registry()
    analysis = analyze_workbook(config, workbook_path, registry)
    source_file = str(workbook_path)
    diagnostics = analysis.diff.diagnostics()

    if not analysis.plans:
        logger.info("no changes to apply")
        return build_report([], source_file, diagnostics=diagnostics)

    settings = editor_settings if editor_settings is not None else editor_settings_from_config(config)
    error_log = error_log if error_log is not None else ErrorLogBuffer(Path(config.log_directory))

    results: list[ChangeResult] = []
    save_failures: list[int] = []
    interrupted = False

    with surface_factory() as surface:
        controller = EntitySessionController(
            surface,
            build_editors(surface, registry, settings),
            error_log=error_log,
            source_file=source_file,
        )
        with ProgressTracker(len(analysis.plans)) as progress:
            for index, plan in enumerate(analysis.plans):
                if stop_event is not None and stop_event.is_set():
                    remaining = analysis.plans[index:]
                    logger.warning(f"interrupted: {len(remaining)} article(s) left unprocessed")
                    for rest in remaining:
                        results.extend(_skipped(rest))
                    interrupted = True
                    break
                progress.start_entity(plan.entity_id)
                entity_results = controller.process_entity(plan)
                results.extend(entity_results)
                progress.finish_entity(all(r.status is ChangeStatus.SUCCESS for r in entity_results))
                progress.set_postfix(ok=sum(1 for r in results if r.status is ChangeStatus.SUCCESS))
        save_failures = list(controller.save_failures)

    return build_report(
        results,
        source_file,
        diagnostics=diagnostics,
        save_failures=save_failures,
        interrupted=interrupted,
    )
