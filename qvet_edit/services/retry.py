from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

"""Bounded retry policy shared by editors that drive flaky UI interactions."""

__all__ = [
    "RetryPolicy",
    "AttemptResult",
    "RetryOutcome",
    "run_with_retry",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_seconds: float = 0.5
    backoff_factor: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_seconds < 0 or self.backoff_factor < 1:
            raise ValueError("backoff_seconds must be >= 0 and backoff_factor >= 1")

    def delay_before(self, attempt: int) -> float:
        """Delay before ``attempt`` (1-based); no delay before the first one."""
        if attempt <= 1:
            return 0.0
        return self.backoff_seconds * (self.backoff_factor ** (attempt - 2))


@dataclass(frozen=True)
class AttemptResult(Generic[T]):
    ok: bool
    value: T | None = None
    error: str | None = None


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    ok: bool
    attempts: int
    value: T | None = None
    error: str | None = None


def run_with_retry(
    attempt_fn: Callable[[int], AttemptResult[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Any] = time.sleep,
    label: str = "operation",
) -> RetryOutcome[T]:
    """Call ``attempt_fn(attempt_no)`` until it succeeds or attempts run out.

    ``attempt_fn`` reports failure by returning ``AttemptResult(ok=False)``;
    exceptions are not caught here. The last failure's error is returned.
    """
    last: AttemptResult[T] = AttemptResult(ok=False, error="not attempted")
    for attempt in range(1, policy.max_attempts + 1):
        wait = policy.delay_before(attempt)
        if wait > 0:
            sleep(wait)
        last = attempt_fn(attempt)
        if last.ok:
            return RetryOutcome(ok=True, attempts=attempt, value=last.value)
        logger.debug(f"{label}: attempt {attempt}/{policy.max_attempts} failed: {last.error}")
    return RetryOutcome(ok=False, attempts=policy.max_attempts, value=last.value, error=last.error)
