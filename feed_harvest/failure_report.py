from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from .batch import RunStatistics


def build_run_summary(stats: RunStatistics, *, failure_log_path: str | Path | None = None) -> dict[str, Any]:
    details: dict[str, Any] = {
        "downloaded": int(stats.downloaded),
        "skipped": int(stats.skipped),
        "failed": int(stats.failed),
        "processed": int(stats.processed),
    }

    if stats.archive_path is not None:
        details["archive_path"] = str(stats.archive_path)
        details["archive_size_bytes"] = int(stats.archive_size_bytes or 0)

    # The failure log is only worth pointing at when something failed.
    if stats.failed > 0 and failure_log_path is not None:
        details["failure_log"] = str(failure_log_path)

    status = "completed" if stats.failed == 0 else "completed_with_failures"
    summary = (
        f"{stats.downloaded} downloaded, {stats.skipped} skipped, {stats.failed} failed"
    )

    return {
        "status": status,
        "summary": summary,
        "details": details,
    }


def format_run_summary(report: Mapping[str, Any]) -> str:
    details = report.get("details")
    if not isinstance(details, Mapping):
        details = {}

    lines: list[str] = ["Download complete!"]
    summary = str(report.get("summary") or "").strip()
    if summary:
        lines.append(f"Stats: {summary}")

    archive = details.get("archive_path")
    if archive:
        size = int(details.get("archive_size_bytes") or 0)
        lines.append(f"Archive: {archive} ({size / 1024 / 1024:.2f} MB)")

    failure_log = details.get("failure_log")
    if failure_log:
        lines.append(f"Check {failure_log} for failed downloads")

    return "\n".join(lines)
