from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Callable


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FailureLog:
    """
    Append-only text log of posts that failed permanently.

    One line per post: `[<timestamp>] <url> - <message>`.
    """

    def __init__(self, path: str | Path, *, clock: Callable[[], str] | None = None) -> None:
        self._path = Path(path)
        self._clock = clock or _utc_now_iso
        self._lock = Lock()
        self._count = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def count(self) -> int:
        return self._count

    def reset(self) -> None:
        with self._lock:
            self._path.unlink(missing_ok=True)
            self._count = 0

    def append(self, url: str, message: str) -> None:
        msg = " ".join((message or "").split()) or "unknown error"
        line = f"[{self._clock()}] {(url or '').strip()} - {msg}\n"
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8", newline="\n") as fh:
                fh.write(line)
            self._count += 1

    def read_lines(self) -> list[str]:
        if not self._path.exists():
            return []
        return [ln for ln in self._path.read_text(encoding="utf-8").splitlines() if ln.strip()]
