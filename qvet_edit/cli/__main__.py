from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from qvet_edit.config.loader import DEFAULT_CONFIG_PATH, AppConfig, ConfigError, load_config, load_credentials
from qvet_edit.logging.error_log import ErrorLogBuffer
from qvet_edit.logging.init import log_summary, setup_logging
from qvet_edit.services.orchestrator import ProcessingError, analyze_workbook, process_edit
from qvet_edit.services.report import render_summary_line, write_reports
from qvet_edit.surface.driver import LoginError, open_session

"""CLI entrypoint.

    python -m qvet_edit.cli WORKBOOK [--config PATH] [--report-dir DIR] [--dry-run] [--debug]

Flow: load .env -> load config -> diff the workbook -> (live) log in and
apply every change -> write reports + error log -> SUMMARY line.

Exit codes: 0 every change applied (or nothing to do), 2 some change failed
or was skipped, 1 fatal (config, workbook, credentials, login).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True: .env の値で既存の環境変数を上書き (QVET_* 認証情報を最優先).
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="qvet_edit",
        description="Apply the differences between the Original and Editar sheets to QVET articles",
    )
    p.add_argument("workbook", nargs="?", help="Workbook (.xlsx) with the baseline and edited sheets")
    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Config YAML (default: %(default)s)")
    p.add_argument("--report-dir", default=None, help="Report directory (overrides report_directory)")
    p.add_argument("--dry-run", action="store_true", help="Print detected changes and exit without a browser")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _install_interrupt_handler(stop_event: threading.Event) -> Any:
    """First Ctrl+C requests a stop after the current article; a second one aborts."""

    def _handler(signum: int, frame: Any) -> None:
        if stop_event.is_set():
            signal.signal(signal.SIGINT, signal.default_int_handler)
            raise KeyboardInterrupt
        stop_event.set()
        print("WARN interrupt received: finishing the current article, press Ctrl+C again to abort", flush=True)

    return signal.signal(signal.SIGINT, _handler)


def _dry_run(cfg: AppConfig, workbook: Path) -> int:
    analysis = analyze_workbook(cfg, workbook)
    for plan in analysis.plans:
        print(f"ARTICLE {plan.entity_id}")
        for section in plan.sections:
            print(f"  [{section.section}]")
            for c in section.changes:
                print(f'    {c.column} ({c.field_type.value}): "{c.old_value}" -> "{c.new_value}"')
    diag = analysis.diff.diagnostics()
    if diag.skipped_rows:
        print(f"skipped rows (no numeric id): {list(diag.skipped_rows)}")
    if diag.unmapped_columns:
        print(f"unmapped columns ignored: {diag.unmapped_columns}")
    print(f"dry-run: {len(analysis.diff.changes)} change(s) in {len(analysis.plans)} article(s)")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # None のときのみ sys.argv を読む (テストの cli_main([]) に pytest の引数が混入しないように)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)

    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(Path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if not args.workbook:
        logger.error("input: no workbook given")
        return EXIT_FATAL
    workbook = Path(args.workbook)

    if args.dry_run:
        try:
            return _dry_run(cfg, workbook)
        except ProcessingError as e:
            logger.error(f"input: {e}")
            return EXIT_FATAL

    credentials = load_credentials()
    report_dir = Path(args.report_dir or cfg.report_directory)
    error_log = ErrorLogBuffer(Path(cfg.log_directory))
    stop_event = threading.Event()
    previous_handler = _install_interrupt_handler(stop_event)

    logger.info(f"Applying changes from: {workbook}")
    try:
        report = process_edit(
            cfg,
            workbook,
            lambda: open_session(cfg, credentials),
            stop_event=stop_event,
            error_log=error_log,
        )
    except ProcessingError as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL
    except LoginError as e:
        logger.error(f"login: {e}")
        return EXIT_FATAL
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        log_path = error_log.flush()
        if error_log.written:
            logger.info(f"error log: {log_path}")

    json_path, md_path = write_reports(report, report_dir)
    logger.info(f"report: {json_path}")
    logger.info(f"report: {md_path}")
    if report.save_failures:
        logger.warning(f"save failed for article(s): {list(report.save_failures)}")
    if report.interrupted:
        logger.warning("run interrupted; rerun with a refreshed workbook to apply the rest")

    # log_summary adds the "SUMMARY " label
    log_summary(render_summary_line(report)[len("SUMMARY "):])

    if report.all_succeeded:
        return EXIT_SUCCESS_ALL
    return EXIT_PARTIAL_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
