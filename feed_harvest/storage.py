from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from .errors import PreconditionError


def save_discovered_links(path: str | Path, links: Sequence[str]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(list(links), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return p


def load_discovered_links(path: str | Path) -> list[str]:
    """
    Read a discovery file written by `save_discovered_links`.

    A missing or malformed file is a PreconditionError: there is nothing to download.
    """
    p = Path(path)
    if not p.exists():
        raise PreconditionError(f"{p} not found. Run discovery first.")

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise PreconditionError(f"Failed to read discovery file {p}: {e}") from e

    if not isinstance(data, list):
        raise PreconditionError(f"Discovery file {p} must contain a JSON list of URLs")

    out: list[str] = []
    for item in data:
        if isinstance(item, str) and item.strip():
            out.append(item.strip())
    return out
