from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from .errors import ExhaustedRetriesError, PreconditionError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """
    Linear backoff retry policy.

    - max_retries counts retries after the initial attempt (max_retries=2 => 3 tries).
    - the delay before retry n is base_delay_seconds * n.
    """

    max_retries: int = 2
    base_delay_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")

    @property
    def max_attempts(self) -> int:
        return int(self.max_retries) + 1


@dataclass(frozen=True)
class RetryEvent:
    operation: str
    failure_attempt: int
    next_attempt: int
    max_attempts: int

    delay_seconds: float

    error_type: str
    error_message: str

    context_url: str | None


IsRetryableFn = Callable[[BaseException], bool]
OnRetryFn = Callable[[RetryEvent], None]
SleepFn = Callable[[float], None]


def is_retryable_acquisition_error(exc: BaseException) -> bool:
    # Missing tools or inputs will not appear between attempts.
    return not isinstance(exc, PreconditionError)


def backoff_seconds(failure_attempt: int, cfg: RetryConfig) -> float:
    # failure_attempt=1 => base delay.
    return max(0.0, float(cfg.base_delay_seconds) * max(1, int(failure_attempt)))


def call_with_retries(
    fn: Callable[[], T],
    *,
    cfg: RetryConfig,
    operation: str,
    is_retryable: IsRetryableFn | None = None,
    on_retry: OnRetryFn | None = None,
    sleep_fn: SleepFn | None = None,
    context_url: str | None = None,
) -> T:
    """
    Call fn() until it succeeds or the retry budget is spent.

    Non-retryable errors propagate unchanged. When every attempt fails, the last
    error is wrapped in ExhaustedRetriesError.
    """
    op = (operation or "").strip() or "operation"
    sleeper = sleep_fn or time.sleep
    retryable = is_retryable or is_retryable_acquisition_error
    max_attempts = cfg.max_attempts

    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except Exception as exc:
            if not retryable(exc):
                raise

            if attempt >= max_attempts:
                raise ExhaustedRetriesError(op, attempt, exc) from exc

            delay = backoff_seconds(attempt, cfg)

            if on_retry is not None:
                on_retry(
                    RetryEvent(
                        operation=op,
                        failure_attempt=int(attempt),
                        next_attempt=int(attempt) + 1,
                        max_attempts=int(max_attempts),
                        delay_seconds=float(delay),
                        error_type=type(exc).__name__,
                        error_message=(str(exc) or "").strip(),
                        context_url=context_url,
                    )
                )

            if delay > 0:
                sleeper(float(delay))

    # Unreachable, but keeps typing happy.
    raise RuntimeError(f"Retry loop exited unexpectedly for operation={op}")
