from __future__ import annotations

import re
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Literal

PostKind = Literal["video", "photo"]

_OWNER_RE = re.compile(r"tiktok\.com/@([^/?#]+)/")
_POST_ID_RE = re.compile(r"/(video|photo)/(\d+)")

UNKNOWN_OWNER = "unknown"
SHORT_ID_LENGTH = 8


def extract_owner_handle(url: str) -> str:
    match = _OWNER_RE.search(url or "")
    return f"@{match.group(1)}" if match else UNKNOWN_OWNER


def extract_post_id(url: str) -> str | None:
    match = _POST_ID_RE.search(url or "")
    return match.group(2) if match else None


def is_photo_post(url: str) -> bool:
    return "/photo/" in (url or "")


def _now_ms() -> int:
    return int(time.time() * 1000)


class FallbackIdSource:
    """
    Hands out millisecond timestamps for posts whose URL carries no id.

    Values are strictly increasing, so a batch parsed within one millisecond still
    gets distinct ids (and distinct short ids).
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or _now_ms
        self._last = 0
        self._lock = Lock()

    def __call__(self) -> int:
        with self._lock:
            self._last = max(self._last + 1, int(self._clock()))
            return self._last


_fallback_ids = FallbackIdSource()


@dataclass(frozen=True)
class PostReference:
    """A discovered post URL plus the identity fields derived from it."""

    url: str
    owner_handle: str
    post_id: str
    kind: PostKind
    post_id_synthesized: bool = False

    @classmethod
    def from_url(cls, url: str, *, clock: Callable[[], int] | None = None) -> "PostReference":
        """
        Parse a post URL.

        When the URL carries no numeric id, a process-wide increasing millisecond
        timestamp stands in for it. Such ids change from run to run, so these posts are
        never skipped as already downloaded; `post_id_synthesized` marks them.
        """
        value = (url or "").strip()
        post_id = extract_post_id(value)
        synthesized = post_id is None
        if post_id is None:
            post_id = str((clock or _fallback_ids)())

        return cls(
            url=value,
            owner_handle=extract_owner_handle(value),
            post_id=post_id,
            kind="photo" if is_photo_post(value) else "video",
            post_id_synthesized=synthesized,
        )

    @property
    def short_id(self) -> str:
        return self.post_id[-SHORT_ID_LENGTH:]

    @property
    def is_photo(self) -> bool:
        return self.kind == "photo"
