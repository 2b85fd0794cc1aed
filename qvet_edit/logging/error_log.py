from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ENTITY_FIELD, ErrorRecord

"""Error log buffering.

- JSON Lines, fixed key set (timestamp, file, entity_id, field, error_type, message)
- one file per run: ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC), created on first flush
- records are buffered during the run and written once at the end
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "ENTITY_NOT_FOUND",
    "SECTION_NOT_FOUND",
    "FIELD_MUTATION_FAILED",
    "VERIFY_FAILED",
    "SAVE_FAILED",
    "CLOSE_FAILED",
    "ERROR_TYPES",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
SECTION_NOT_FOUND = "SECTION_NOT_FOUND"
FIELD_MUTATION_FAILED = "FIELD_MUTATION_FAILED"
VERIFY_FAILED = "VERIFY_FAILED"
SAVE_FAILED = "SAVE_FAILED"
CLOSE_FAILED = "CLOSE_FAILED"

ERROR_TYPES = (
    ENTITY_NOT_FOUND,
    SECTION_NOT_FOUND,
    FIELD_MUTATION_FAILED,
    VERIFY_FAILED,
    SAVE_FAILED,
    CLOSE_FAILED,
)


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() appends JSON Lines.

    The file path is fixed on first access; single-threaded use only.
    """

    def __init__(self, directory: Path | None = None) -> None:
        self._directory = directory if directory is not None else LOGS_DIR
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._written = 0

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._directory.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._directory / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    @property
    def written(self) -> int:
        return self._written

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def add(self, file: str, entity_id: int, field: str, error_type: str, message: str) -> ErrorRecord:
        record = ErrorRecord.create(file, entity_id, field or ENTITY_FIELD, error_type, message)
        self.append(record)
        return record

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the log path, or None when nothing was ever written."""
        if not self._records:
            return self._file_path
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._written += len(self._records)
        self._records.clear()
        return fp
