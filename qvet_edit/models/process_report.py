from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .change_result import ChangeResult

"""Process report models.

ProcessReport aggregates every ChangeResult of one run. It is built once by
services.report.build_report and rendered (JSON / Markdown / SUMMARY line)
from the same instance.
"""

__all__ = [
    "Breakdown",
    "DiffDiagnostics",
    "ProcessReport",
]


@dataclass(frozen=True)
class Breakdown:
    """Per-field or per-entity counters."""
    total: int = 0
    success: int = 0
    failed: int = 0  # error + verify_failed (skipped excluded)


@dataclass(frozen=True)
class DiffDiagnostics:
    """Observable trace of the diff engine's silent-skip policies."""
    id_column: str = ""
    compared_rows: int = 0
    skipped_rows: tuple[int, ...] = ()  # worksheet row numbers with unparseable id
    unmapped_columns: dict[str, int] = field(default_factory=dict)  # column -> ignored differences


@dataclass(frozen=True)
class ProcessReport:
    timestamp: datetime
    source_file: str
    total_changes: int
    successful: int
    failed: int
    skipped: int
    verify_failed: int  # subset of failed
    changes: list[ChangeResult]
    by_field: dict[str, Breakdown]
    by_entity: dict[int, Breakdown]
    diagnostics: DiffDiagnostics = field(default_factory=DiffDiagnostics)
    save_failures: tuple[int, ...] = ()
    interrupted: bool = False

    @property
    def entity_count(self) -> int:
        return len(self.by_entity)

    @property
    def all_succeeded(self) -> bool:
        return self.successful == self.total_changes
