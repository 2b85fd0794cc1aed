from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..models.change_record import ChangeRecord
from ..models.change_result import ChangeStatus
from ..services.retry import RetryPolicy
from ..surface.base import LiveSurface

"""Shared editor types: EditOutcome, EditorSettings, FieldEditor base class."""

__all__ = [
    "EditOutcome",
    "EditorSettings",
    "FieldEditor",
    "parse_number",
    "format_number",
    "GRID_STRATEGIES",
]

GRID_STRATEGIES = ("interactive", "model")

_NUMBER_PREFIX = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_number(text: Any) -> float:
    """Lenient numeric parse: leading numeric prefix, invalid -> 0.0.

    A single decimal comma ("2,5") is accepted as a decimal point.
    """
    if isinstance(text, bool):
        return float(text)
    if isinstance(text, (int, float)):
        return float(text)
    s = str(text or "").strip()
    if s.count(",") == 1 and "." not in s:
        s = s.replace(",", ".")
    m = _NUMBER_PREFIX.match(s)
    return float(m.group(1)) if m else 0.0


def format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


@dataclass(frozen=True)
class EditOutcome:
    status: ChangeStatus
    actual_value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is ChangeStatus.SUCCESS

    @staticmethod
    def success(actual_value: Any = None) -> EditOutcome:
        return EditOutcome(ChangeStatus.SUCCESS, actual_value=actual_value)

    @staticmethod
    def failure(error: str, actual_value: Any = None) -> EditOutcome:
        return EditOutcome(ChangeStatus.ERROR, actual_value=actual_value, error=error)

    @staticmethod
    def verify_failed(error: str, actual_value: Any = None) -> EditOutcome:
        return EditOutcome(ChangeStatus.VERIFY_FAILED, actual_value=actual_value, error=error)


@dataclass(frozen=True)
class EditorSettings:
    """Timing and strategy knobs, built from AppConfig."""
    cascade_settle_seconds: float = 5.0
    option_wait_seconds: float = 10.0
    edit_mode_wait_seconds: float = 2.0
    grid_strategy: str = "interactive"
    grid_retry: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: Callable[[float], Any] = time.sleep

    def __post_init__(self) -> None:
        if self.grid_strategy not in GRID_STRATEGIES:
            raise ValueError(f"grid_strategy must be one of {GRID_STRATEGIES}")


class FieldEditor(ABC):
    """Locates, mutates and (where possible) verifies one field type."""

    def __init__(self, surface: LiveSurface, settings: EditorSettings) -> None:
        self.surface = surface
        self.settings = settings

    @abstractmethod
    def apply(self, change: ChangeRecord) -> EditOutcome:
        """Apply ``change``; failures are returned, not raised."""
