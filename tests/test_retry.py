from __future__ import annotations

import unittest

from feed_harvest.errors import ExhaustedRetriesError, PreconditionError, TransferError
from feed_harvest.retry import RetryConfig, RetryEvent, backoff_seconds, call_with_retries


class _Flaky:
    def __init__(self, failures: int, exc: Exception | None = None) -> None:
        self.failures = failures
        self.calls = 0
        self.exc = exc or TransferError("stream reset")

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "ok"


class TestRetry(unittest.TestCase):
    def test_succeeds_after_up_to_two_failures(self) -> None:
        for k in (0, 1, 2):
            fn = _Flaky(k)
            sleeps: list[float] = []
            result = call_with_retries(
                fn,
                cfg=RetryConfig(max_retries=2, base_delay_seconds=1.0),
                operation="test",
                sleep_fn=sleeps.append,
            )
            self.assertEqual(result, "ok")
            self.assertEqual(fn.calls, k + 1)
            self.assertEqual(sleeps, [1.0 * n for n in range(1, k + 1)])

    def test_exhausted_after_three_attempts(self) -> None:
        fn = _Flaky(3)
        events: list[RetryEvent] = []
        sleeps: list[float] = []

        with self.assertRaises(ExhaustedRetriesError) as ctx:
            call_with_retries(
                fn,
                cfg=RetryConfig(max_retries=2, base_delay_seconds=0.5),
                operation="acquire.video",
                on_retry=events.append,
                sleep_fn=sleeps.append,
                context_url="https://www.tiktok.com/@a/video/1",
            )

        self.assertEqual(fn.calls, 3)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIsInstance(ctx.exception.last_error, TransferError)
        self.assertIs(ctx.exception.__cause__, ctx.exception.last_error)
        self.assertEqual(sleeps, [0.5, 1.0])
        self.assertEqual([e.next_attempt for e in events], [2, 3])
        self.assertEqual(events[0].context_url, "https://www.tiktok.com/@a/video/1")
        self.assertEqual(events[0].error_type, "TransferError")

    def test_precondition_errors_are_not_retried(self) -> None:
        fn = _Flaky(5, PreconditionError("ffmpeg missing"))
        with self.assertRaises(PreconditionError):
            call_with_retries(fn, cfg=RetryConfig(), operation="x", sleep_fn=lambda _s: None)
        self.assertEqual(fn.calls, 1)

    def test_config_validation_and_backoff(self) -> None:
        with self.assertRaises(ValueError):
            RetryConfig(max_retries=-1)
        with self.assertRaises(ValueError):
            RetryConfig(base_delay_seconds=-0.1)
        cfg = RetryConfig(max_retries=2, base_delay_seconds=1.0)
        self.assertEqual(cfg.max_attempts, 3)
        self.assertEqual(backoff_seconds(2, cfg), 2.0)


if __name__ == "__main__":
    unittest.main()
