from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable
from urllib.parse import urlsplit, urlunsplit


def canonicalize_url(url: str) -> str:
    value = (url or "").strip()
    if not value:
        return ""

    try:
        parts = urlsplit(value)
    except ValueError:
        return value.rstrip("/")

    if not parts.scheme or not parts.netloc:
        return value.rstrip("/")

    scheme = parts.scheme.lower()
    netloc = parts.netloc.lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]

    path = (parts.path or "").rstrip("/")
    if not path:
        path = "/"

    return urlunsplit((scheme, netloc, path, "", ""))


@dataclass
class OrderedLinkSet:
    """
    Insertion-ordered set of post URLs keyed by their canonical form.

    The first spelling of a URL wins; later duplicates (tracking params, `www.`,
    trailing slash) are ignored.
    """

    _keys: set[str] = field(default_factory=set)
    _urls: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._urls)

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and canonicalize_url(url) in self._keys

    def add(self, url: str) -> bool:
        value = (url or "").strip()
        key = canonicalize_url(value)
        if not key or key in self._keys:
            return False
        self._keys.add(key)
        self._urls.append(value)
        return True

    def update(self, urls: Iterable[str]) -> int:
        added = 0
        for url in urls:
            if self.add(url):
                added += 1
        return added

    def as_list(self) -> list[str]:
        return list(self._urls)
