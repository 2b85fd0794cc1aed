from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook reader for the edit workbook.

The workbook holds two sheets with identical headers:
- ``Original``: article values as exported from QVET (baseline)
- ``Editar``: the same rows after manual editing

Row 1 is the header, data rows follow. Cells are read as raw Python objects
(dtype=object) so integer codes are not widened to floats, and fully blank
rows are kept so positional row alignment between the two sheets holds.
"""

__all__ = [
    "WorkbookError",
    "MissingSheetError",
    "HeaderMismatchError",
    "SnapshotTable",
    "read_snapshot_pair",
]

logger = logging.getLogger(__name__)

DEFAULT_BASELINE_SHEET = "Original"
DEFAULT_EDITED_SHEET = "Editar"


class WorkbookError(Exception):
    """Raised when the workbook cannot be read or is structurally invalid."""


class MissingSheetError(WorkbookError):
    """Raised when the baseline or edited sheet is absent."""


class HeaderMismatchError(WorkbookError):
    """Raised when the two sheets do not share the same header row."""


@dataclass(frozen=True)
class SnapshotTable:
    sheet_name: str
    header: list[str]
    rows: list[list[Any]]  # data rows, positionally aligned with header

    def __len__(self) -> int:
        return len(self.rows)

    def cell(self, row_index: int, col_index: int) -> Any:
        if row_index >= len(self.rows):
            return None
        row = self.rows[row_index]
        if col_index >= len(row):
            return None
        return row[col_index]

    @staticmethod
    def row_number(row_index: int) -> int:
        """1-based worksheet row for a data row index (header is row 1)."""
        return row_index + 2


def _header_name(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def _trimmed(header: list[str]) -> list[str]:
    end = len(header)
    while end > 0 and not header[end - 1]:
        end -= 1
    return header[:end]


def _to_table(df: pd.DataFrame, sheet_name: str) -> SnapshotTable:
    if df.shape[0] < 1:
        raise WorkbookError(f"sheet '{sheet_name}' has no header row")
    header = [_header_name(v) for v in df.iloc[0].tolist()]
    rows: list[list[Any]] = [list(raw) for raw in df.iloc[1:].itertuples(index=False, name=None)]
    return SnapshotTable(sheet_name=sheet_name, header=header, rows=rows)


def read_snapshot_pair(
    path: Path,
    baseline_sheet: str = DEFAULT_BASELINE_SHEET,
    edited_sheet: str = DEFAULT_EDITED_SHEET,
) -> tuple[SnapshotTable, SnapshotTable]:
    """Read the baseline and edited sheets of ``path``.

    Raises:
        WorkbookError: file missing / unreadable, or a sheet without header
        MissingSheetError: baseline or edited sheet absent
        HeaderMismatchError: headers differ (trailing blank columns ignored)
    """
    if not path.exists():
        raise WorkbookError(f"workbook not found: {path}")
    try:
        xls = pd.ExcelFile(path)
    except Exception as e:  # openpyxl / zipfile の例外型はまちまち
        raise WorkbookError(f"cannot read workbook {path}: {e}") from e

    names = [str(n) for n in xls.sheet_names]
    missing = [s for s in (baseline_sheet, edited_sheet) if s not in names]
    if missing:
        raise MissingSheetError(
            f"workbook must contain sheets '{baseline_sheet}' and '{edited_sheet}' (missing: {missing})"
        )

    tables = []
    for name in (baseline_sheet, edited_sheet):
        df = xls.parse(name, header=None, dtype=object, keep_default_na=False, na_values=[""])
        tables.append(_to_table(df, name))
    baseline, edited = tables

    if _trimmed(baseline.header) != _trimmed(edited.header):
        raise HeaderMismatchError(
            f"sheets '{baseline_sheet}' and '{edited_sheet}' have different headers"
        )
    if len(baseline) != len(edited):
        logger.warning(
            f"row count differs: {baseline_sheet}={len(baseline)} {edited_sheet}={len(edited)}; "
            "only rows present in both are compared"
        )
    return baseline, edited
