from __future__ import annotations

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import pandas as pd

from ..excel.reader import SnapshotTable
from ..models.change_record import ChangeRecord
from ..models.process_report import DiffDiagnostics
from ..registry.field_map import FieldRegistry

"""Tabular diff engine: baseline vs edited snapshot -> ChangeRecords.

Policies:
- The entity id column is located by fuzzy header match and never diffed.
- Rows whose id does not parse as an integer are skipped (recorded in
  diagnostics, not an error).
- Differences in columns without a registry entry are ignored (counted in
  diagnostics, not an error).
- Numeric cells are normalized (1.0 -> "1") before comparison; text cells
  are compared literally after trimming.
"""

__all__ = [
    "MissingIdColumnError",
    "DiffResult",
    "ID_COLUMN_ALIASES",
    "normalize_value",
    "find_id_column",
    "parse_entity_id",
    "detect_changes",
]

logger = logging.getLogger(__name__)

# substring matches (lower-case); "id" must match exactly
ID_COLUMN_ALIASES = ("codigo interno", "idarticulo")
ID_COLUMN_EXACT = "id"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class MissingIdColumnError(Exception):
    """Raised when no entity id column can be found in the edited header."""


@dataclass(frozen=True)
class DiffResult:
    changes: list[ChangeRecord]
    id_column: str
    compared_rows: int = 0
    skipped_rows: tuple[int, ...] = ()
    unmapped_columns: dict[str, int] = field(default_factory=dict)

    @property
    def entity_ids(self) -> list[int]:
        return list(dict.fromkeys(c.entity_id for c in self.changes))

    def diagnostics(self) -> DiffDiagnostics:
        return DiffDiagnostics(
            id_column=self.id_column,
            compared_rows=self.compared_rows,
            skipped_rows=self.skipped_rows,
            unmapped_columns=dict(self.unmapped_columns),
        )


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return False
    # NaN / NaT / pd.NA
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize_value(value: Any) -> str:
    """Normalize a cell for comparison.

    None / NaN / NaT / blank -> "", strings are trimmed, integral floats are
    rendered as integers. normalize_value(normalize_value(x)) == normalize_value(x).
    """
    if _is_missing(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def find_id_column(header: list[str]) -> int:
    for idx, name in enumerate(header):
        lowered = (name or "").strip().lower()
        if not lowered:
            continue
        if lowered == ID_COLUMN_EXACT or any(alias in lowered for alias in ID_COLUMN_ALIASES):
            return idx
    raise MissingIdColumnError(
        "no entity id column found (expected a header containing "
        f"{' / '.join(repr(a) for a in ID_COLUMN_ALIASES)} or exactly 'id')"
    )


def parse_entity_id(value: Any) -> int | None:
    """Lenient integer parse of an id cell; None when not parseable."""
    if _is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else int(math.trunc(value))
    m = _LEADING_INT.match(str(value))
    if m is None:
        return None
    return int(m.group(1))


def detect_changes(baseline: SnapshotTable, edited: SnapshotTable, registry: FieldRegistry) -> DiffResult:
    """Compare ``baseline`` and ``edited`` row by row.

    Args:
        baseline: snapshot as exported
        edited: snapshot after manual edits (same header, same row order)
        registry: column -> descriptor mapping; unmapped columns are ignored

    Returns:
        DiffResult with ordered ChangeRecords and skip diagnostics

    Raises:
        MissingIdColumnError: no id column in the edited header
    """
    header = edited.header
    id_idx = find_id_column(header)
    logger.info(f"id column: '{header[id_idx]}' (index {id_idx})")

    changes: list[ChangeRecord] = []
    skipped_rows: list[int] = []
    unmapped: Counter[str] = Counter()
    compared = 0

    for row_idx in range(min(len(baseline), len(edited))):
        row_number = SnapshotTable.row_number(row_idx)
        entity_id = parse_entity_id(edited.cell(row_idx, id_idx))
        if entity_id is None:
            skipped_rows.append(row_number)
            continue
        compared += 1
        for col_idx, column in enumerate(header):
            if not column or col_idx == id_idx:
                continue
            old_norm = normalize_value(baseline.cell(row_idx, col_idx))
            new_norm = normalize_value(edited.cell(row_idx, col_idx))
            if old_norm == new_norm:
                continue
            descriptor = registry.lookup(column)
            if descriptor is None:
                unmapped[column] += 1
                continue
            changes.append(
                ChangeRecord(
                    entity_id=entity_id,
                    column=column,
                    old_value=old_norm,
                    new_value=new_norm,
                    descriptor=descriptor,
                    row_number=row_number,
                )
            )

    if skipped_rows:
        logger.debug(f"skipped rows without numeric id: {skipped_rows}")
    if unmapped:
        logger.info(f"ignored differences in unmapped columns: {dict(unmapped)}")

    return DiffResult(
        changes=changes,
        id_column=header[id_idx],
        compared_rows=compared,
        skipped_rows=tuple(skipped_rows),
        unmapped_columns=dict(unmapped),
    )
