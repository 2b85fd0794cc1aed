from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

Each non-success outcome of a run (entity, section, field, save or close
failure) becomes one line. entity_id=-1 is the sentinel for run-level records
where no article applies. The key set is fixed; see error_log_schema.json.
"""

__all__ = [
    "ErrorRecord",
    "ENTITY_FIELD",
]

ENTITY_FIELD = "<ENTITY>"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: workbook being applied
        entity_id: article id, -1 when unknown
        field: workbook column, ``<ENTITY>`` or ``<SECTION:name>``
        error_type: classification in UPPER_SNAKE_CASE
        message: editor / surface diagnostic
    """
    timestamp: str
    file: str
    entity_id: int
    field: str
    error_type: str
    message: str

    @staticmethod
    def create(file: str, entity_id: int, field: str, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            entity_id=entity_id,
            field=field,
            error_type=error_type,
            message=message,
        )

    @staticmethod
    def section_field(section: str) -> str:
        return f"<SECTION:{section}>"

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
