from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from feed_harvest.failure_log import FailureLog


class TestFailureLog(unittest.TestCase):
    def test_append_formats_one_line_per_failure(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            log = FailureLog(Path(td) / "download-failures.log", clock=lambda: "2026-01-01T00:00:00+00:00")
            log.append("https://x/video/1", "FFmpeg failed:\n  bad input")
            log.append("https://x/video/2", "")

            self.assertEqual(
                log.read_lines(),
                [
                    "[2026-01-01T00:00:00+00:00] https://x/video/1 - FFmpeg failed: bad input",
                    "[2026-01-01T00:00:00+00:00] https://x/video/2 - unknown error",
                ],
            )
            self.assertEqual(log.count, 2)

    def test_reset_removes_previous_run(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            log = FailureLog(Path(td) / "download-failures.log")
            log.append("https://x/video/1", "nope")

            log.reset()

            self.assertFalse(log.path.exists())
            self.assertEqual(log.read_lines(), [])
            self.assertEqual(log.count, 0)


if __name__ == "__main__":
    unittest.main()
