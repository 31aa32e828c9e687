from __future__ import annotations

import unittest
from pathlib import Path

from feed_harvest.batch import RunStatistics
from feed_harvest.failure_report import build_run_summary, format_run_summary


class TestRunSummary(unittest.TestCase):
    def test_clean_run(self) -> None:
        report = build_run_summary(
            RunStatistics(downloaded=9, skipped=1, failed=0),
            failure_log_path="download-failures.log",
        )

        self.assertEqual(report["status"], "completed")
        self.assertEqual(report["summary"], "9 downloaded, 1 skipped, 0 failed")
        self.assertEqual(report["details"]["processed"], 10)
        self.assertNotIn("failure_log", report["details"])
        self.assertNotIn("archive_path", report["details"])

        text = format_run_summary(report)
        self.assertTrue(text.startswith("Download complete!"))
        self.assertNotIn("Check", text)

    def test_failures_and_archive_are_reported(self) -> None:
        stats = RunStatistics(
            downloaded=2,
            skipped=0,
            failed=1,
            archive_path=Path("/tmp/out/@alice.zip"),
            archive_size_bytes=3 * 1024 * 1024,
        )

        report = build_run_summary(stats, failure_log_path="download-failures.log")

        self.assertEqual(report["status"], "completed_with_failures")
        self.assertEqual(report["details"]["failure_log"], "download-failures.log")
        self.assertEqual(report["details"]["archive_size_bytes"], 3 * 1024 * 1024)

        text = format_run_summary(report)
        self.assertIn("Stats: 2 downloaded, 0 skipped, 1 failed", text)
        self.assertIn("Archive: /tmp/out/@alice.zip (3.00 MB)", text)
        self.assertIn("Check download-failures.log for failed downloads", text)


if __name__ == "__main__":
    unittest.main()
