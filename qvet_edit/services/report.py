from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..models.change_result import ChangeResult, ChangeStatus
from ..models.process_report import Breakdown, DiffDiagnostics, ProcessReport

"""Report generation: JSON + Markdown + SUMMARY line.

build_report is the only place where counts are computed; every rendering
reads the same ProcessReport (Markdown is rendered from report_to_dict so
both files always agree).

SUMMARY line format:
    SUMMARY changes={N} success={S} failed={F} skipped={K} verify_failed={V} entities={E}
"""

__all__ = [
    "REPORT_TIMESTAMP_FMT",
    "build_report",
    "report_to_dict",
    "render_markdown",
    "render_summary_line",
    "write_reports",
]

REPORT_TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

STATUS_MARKERS = {
    ChangeStatus.SUCCESS.value: "✅",
    ChangeStatus.ERROR.value: "❌",
    ChangeStatus.SKIPPED.value: "⏭️",
    ChangeStatus.VERIFY_FAILED.value: "⚠️",
}


def _count(results: Iterable[ChangeResult]) -> Breakdown:
    total = success = failed = 0
    for r in results:
        total += 1
        if r.status is ChangeStatus.SUCCESS:
            success += 1
        elif r.status.is_failure:
            failed += 1
    return Breakdown(total=total, success=success, failed=failed)


def build_report(
    results: list[ChangeResult],
    source_file: str,
    *,
    diagnostics: DiffDiagnostics | None = None,
    save_failures: Iterable[int] = (),
    interrupted: bool = False,
    timestamp: datetime | None = None,
) -> ProcessReport:
    """Aggregate ``results`` into a ProcessReport.

    failed counts error and verify_failed results, so
    successful + failed + skipped == total_changes always holds.
    """
    by_field_results: dict[str, list[ChangeResult]] = {}
    by_entity_results: dict[int, list[ChangeResult]] = {}
    for r in results:
        by_field_results.setdefault(r.field, []).append(r)
        by_entity_results.setdefault(r.entity_id, []).append(r)

    totals = _count(results)
    return ProcessReport(
        timestamp=timestamp or datetime.now(UTC),
        source_file=source_file,
        total_changes=totals.total,
        successful=totals.success,
        failed=totals.failed,
        skipped=sum(1 for r in results if r.status is ChangeStatus.SKIPPED),
        verify_failed=sum(1 for r in results if r.status is ChangeStatus.VERIFY_FAILED),
        changes=list(results),
        by_field={k: _count(v) for k, v in by_field_results.items()},
        by_entity={k: _count(v) for k, v in by_entity_results.items()},
        diagnostics=diagnostics or DiffDiagnostics(),
        save_failures=tuple(dict.fromkeys(save_failures)),
        interrupted=interrupted,
    )


def _breakdown_dict(b: Breakdown) -> dict[str, int]:
    return {"total": b.total, "success": b.success, "failed": b.failed}


def report_to_dict(report: ProcessReport) -> dict[str, Any]:
    d = report.diagnostics
    return {
        "timestamp": report.timestamp.isoformat().replace("+00:00", "Z"),
        "source_file": report.source_file,
        "interrupted": report.interrupted,
        "summary": {
            "total_changes": report.total_changes,
            "successful": report.successful,
            "failed": report.failed,
            "skipped": report.skipped,
            "verify_failed": report.verify_failed,
            "entities": report.entity_count,
        },
        "by_field": {k: _breakdown_dict(v) for k, v in report.by_field.items()},
        # JSON object keys are strings
        "by_entity": {str(k): _breakdown_dict(v) for k, v in report.by_entity.items()},
        "save_failures": list(report.save_failures),
        "diagnostics": {
            "id_column": d.id_column,
            "compared_rows": d.compared_rows,
            "skipped_rows": list(d.skipped_rows),
            "unmapped_columns": dict(d.unmapped_columns),
        },
        "changes": [r.to_dict() for r in report.changes],
    }


def _md_cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value).replace("|", "\\|").replace("\n", " ")


def render_markdown(report: ProcessReport) -> str:
    data = report_to_dict(report)
    summary = data["summary"]
    lines = [
        "# Informe de cambios QVET",
        "",
        f"- Fecha: {data['timestamp']}",
        f"- Archivo: {data['source_file']}",
    ]
    if data["interrupted"]:
        lines.append("- **Ejecución interrumpida**: los cambios restantes se marcaron como omitidos")
    lines += [
        "",
        "## Resumen",
        "",
        "| Métrica | Valor |",
        "|---|---|",
        f"| Cambios detectados | {summary['total_changes']} |",
        f"| Exitosos | {summary['successful']} |",
        f"| Fallidos | {summary['failed']} |",
        f"| Omitidos | {summary['skipped']} |",
        f"| Verificación fallida | {summary['verify_failed']} |",
        f"| Artículos | {summary['entities']} |",
        "",
        "## Cambios por Campo",
        "",
        "| Campo | Total | Exitosos | Fallidos |",
        "|---|---|---|---|",
    ]
    for name, b in data["by_field"].items():
        lines.append(f"| {_md_cell(name)} | {b['total']} | {b['success']} | {b['failed']} |")

    if data["save_failures"]:
        lines += ["", "## Errores al guardar", ""]
        lines += [f"- Artículo {eid}" for eid in data["save_failures"]]

    diag = data["diagnostics"]
    if diag["skipped_rows"] or diag["unmapped_columns"]:
        lines += ["", "## Diagnóstico", ""]
        if diag["skipped_rows"]:
            lines.append(f"- Filas sin id numérico: {', '.join(str(n) for n in diag['skipped_rows'])}")
        for col, n in diag["unmapped_columns"].items():
            lines.append(f"- Columna sin mapeo ignorada: {_md_cell(col)} ({n} diferencias)")

    lines += ["", "## Detalle", ""]
    for c in data["changes"]:
        marker = STATUS_MARKERS.get(c["status"], "?")
        line = (
            f"- {marker} **{c['entity_id']}** {_md_cell(c['field'])}: "
            f"\"{_md_cell(c['old_value'])}\" → \"{_md_cell(c['new_value'])}\""
        )
        if c["error"]:
            line += f" ({_md_cell(c['error'])})"
        lines.append(line)
    return "\n".join(lines) + "\n"


def render_summary_line(report: ProcessReport) -> str:
    """Render the SUMMARY line for ``report``.

    Examples:
        >>> from datetime import datetime, timezone
        >>> r = build_report([], "x.xlsx", timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc))
        >>> render_summary_line(r)
        'SUMMARY changes=0 success=0 failed=0 skipped=0 verify_failed=0 entities=0'
    """
    return (
        f"SUMMARY changes={report.total_changes} "
        f"success={report.successful} "
        f"failed={report.failed} "
        f"skipped={report.skipped} "
        f"verify_failed={report.verify_failed} "
        f"entities={report.entity_count}"
    )


def write_reports(report: ProcessReport, directory: Path) -> tuple[Path, Path]:
    """Write ``report-YYYYMMDD-HHMMSS.json`` and ``.md`` into ``directory``."""
    directory.mkdir(parents=True, exist_ok=True)
    stamp = report.timestamp.astimezone(UTC).strftime(REPORT_TIMESTAMP_FMT)
    json_path = directory / f"report-{stamp}.json"
    md_path = directory / f"report-{stamp}.md"
    json_path.write_text(
        json.dumps(report_to_dict(report), ensure_ascii=False, indent=2, default=str), encoding="utf-8"
    )
    md_path.write_text(render_markdown(report), encoding="utf-8")
    return json_path, md_path
