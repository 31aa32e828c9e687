from __future__ import annotations

import re
import unicodedata
from pathlib import Path

MAX_FILENAME_CHARS = 200
OUTPUT_EXTENSION = ".mp4"

_ILLEGAL_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_BIDI_RE = re.compile(r"[\u200e\u200f\u202a-\u202e]")
_NON_ASCII_RE = re.compile(r"[^\x00-\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_RESERVED_RE = re.compile(r"^\.+$")
_WINDOWS_RESERVED_RE = re.compile(r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE)
_WINDOWS_TRAILING_RE = re.compile(r"[. ]+$")
_SUFFIX_RE = re.compile(r"_([^_.]+)\.mp4$")


def clean_text(text: str) -> str:
    """Fold a caption to plain ASCII on a single line."""
    value = unicodedata.normalize("NFKD", text or "")
    value = _NON_ASCII_RE.sub("", value)
    # Line breaks and tabs become spaces before control characters are dropped.
    value = _WHITESPACE_RE.sub(" ", value)
    value = _ILLEGAL_RE.sub("", value)
    value = _BIDI_RE.sub("", value)
    value = _WHITESPACE_RE.sub(" ", value)
    return value.strip()


def sanitize_filename(name: str) -> str:
    value = _ILLEGAL_RE.sub("", name or "")
    if _RESERVED_RE.match(value):
        return ""
    if _WINDOWS_RESERVED_RE.match(value):
        return ""
    value = _WINDOWS_TRAILING_RE.sub("", value)
    return value[:255]


def build_output_filename(caption: str | None, short_id: str, *, default_caption: str) -> str:
    """
    Return `<caption>_<short_id>.mp4`, at most MAX_FILENAME_CHARS long.

    Only the caption is shortened; the id suffix is always kept intact.
    """
    max_caption = MAX_FILENAME_CHARS - len(short_id) - len(OUTPUT_EXTENSION) - 1
    cleaned = clean_text(caption or "") or default_caption
    safe = sanitize_filename(cleaned[: max(0, max_caption)]) or default_caption
    return f"{safe[: max(0, max_caption)]}_{short_id}{OUTPUT_EXTENSION}"


def partial_output_path(final_path: str | Path) -> Path:
    """
    Sibling path that media is written to before being renamed to `final_path`.

    `caption_1234.part.mp4` never matches the id-suffix lookup, so an interrupted
    write is not mistaken for a finished file.
    """
    p = Path(final_path)
    return p.with_name(f"{p.stem}.part{p.suffix}")


def output_suffix(filename: str) -> str | None:
    match = _SUFFIX_RE.search(filename or "")
    return match.group(1) if match else None


def find_existing_output(directory: str | Path, short_id: str) -> Path | None:
    """Return a file in `directory` whose id suffix equals `short_id`, if any."""
    d = Path(directory)
    if not d.is_dir():
        return None

    for entry in sorted(d.iterdir()):
        if entry.is_file() and output_suffix(entry.name) == short_id:
            return entry
    return None
