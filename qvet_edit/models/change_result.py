from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from .change_record import ChangeRecord

"""ChangeResult model: the recorded outcome of one attempted change.

Results are immutable once recorded and are the single source for the
process report (JSON + Markdown).
"""

__all__ = [
    "ChangeStatus",
    "ChangeResult",
]


class ChangeStatus(Enum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"
    VERIFY_FAILED = "verify_failed"

    @property
    def is_failure(self) -> bool:
        return self in (ChangeStatus.ERROR, ChangeStatus.VERIFY_FAILED)


@dataclass(frozen=True)
class ChangeResult:
    entity_id: int
    field: str  # workbook column name
    old_value: str
    new_value: str
    attempted_value: str
    status: ChangeStatus
    actual_value: Any = None
    error: str | None = None

    @staticmethod
    def from_change(
        change: ChangeRecord,
        status: ChangeStatus,
        *,
        actual_value: Any = None,
        error: str | None = None,
    ) -> ChangeResult:
        """Build a result for ``change``; attempted value is always the new value."""
        return ChangeResult(
            entity_id=change.entity_id,
            field=change.column,
            old_value=change.old_value,
            new_value=change.new_value,
            attempted_value=change.new_value,
            status=status,
            actual_value=actual_value,
            error=None if status is ChangeStatus.SUCCESS else error,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data
