"""Activity contexts, retry policies and retry back-off computation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from durabletask.codec import decode

_MILLISECOND = timedelta(milliseconds=1)


@dataclass(kw_only=True)
class RetryPolicy:
    """How a failed activity or sub-orchestration call is retried.

    ``max_retry_interval`` and ``retry_timeout`` of None mean no limit.
    A ``handle`` of None means every error is retried.
    """

    initial_retry_interval: timedelta
    max_attempts: int = 0
    backoff_coefficient: float = 0.0
    max_retry_interval: timedelta | None = None
    retry_timeout: timedelta | None = None
    handle: Callable[[BaseException | None], bool] | None = field(default=None, repr=False)

    def validate(self) -> None:
        """Check the policy and fill in defaults for unset fields.

        Raises ValueError if the initial retry interval is not positive.
        """
        if self.initial_retry_interval <= timedelta(0):
            raise ValueError("InitialRetryInterval must be greater than 0")
        if self.max_attempts <= 0:
            # a single attempt is the same as not retrying
            self.max_attempts = 1
        if self.backoff_coefficient <= 0:
            self.backoff_coefficient = 1.0
        if self.max_retry_interval is not None and self.max_retry_interval <= timedelta(0):
            self.max_retry_interval = None
        if self.retry_timeout is not None and self.retry_timeout <= timedelta(0):
            self.retry_timeout = None

    def should_retry(self, error: BaseException | None) -> bool:
        """Return whether the policy allows retrying after ``error``."""
        return self.handle is None or bool(self.handle(error))


@dataclass(kw_only=True)
class ActivityContext:
    """Context handed to an activity implementation."""

    task_id: int
    task_execution_id: str = ""
    name: str = ""
    raw_input: str | bytes | None = None

    def get_input(self) -> Any:
        """Return the deserialized activity input, or None if there is none."""
        return decode(self.raw_input)


def compute_next_delay(
    current_time: datetime,
    policy: RetryPolicy,
    attempt: int,
    first_attempt: datetime,
    error: BaseException | None,
) -> timedelta:
    """Return the delay before the next retry, or zero if no retry should happen."""
    if not policy.should_retry(error):
        return timedelta(0)
    if policy.retry_timeout is not None and current_time > first_attempt + policy.retry_timeout:
        return timedelta(0)

    initial_ms = policy.initial_retry_interval // _MILLISECOND
    next_delay_ms = float(initial_ms) * (policy.backoff_coefficient ** attempt)
    if policy.max_retry_interval is None or next_delay_ms < float(
        policy.max_retry_interval // _MILLISECOND
    ):
        return timedelta(milliseconds=int(next_delay_ms))
    return policy.max_retry_interval