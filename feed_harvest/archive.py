from __future__ import annotations

import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .naming import sanitize_filename


@dataclass(frozen=True)
class ArchiveInfo:
    path: Path
    size_bytes: int
    file_count: int


def archive_filename(owner_label: str | None, *, now: datetime | None = None) -> str:
    label = sanitize_filename((owner_label or "").strip())
    if not label:
        label = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{label}.zip"


def package_directories(source_root: str | Path, archive_path: str | Path) -> ArchiveInfo:
    """
    Zip every top-level directory under `source_root` into `archive_path`.

    Entries are stored relative to `source_root`, so the archive mirrors the
    per-owner layout (`@owner/<file>.mp4`). Loose top-level files are not included.
    """
    root = Path(source_root)
    dest = Path(archive_path)
    dest.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with zipfile.ZipFile(dest, "w", zipfile.ZIP_DEFLATED) as zf:
        for top in sorted(p for p in root.iterdir() if p.is_dir()):
            zf.write(top, top.relative_to(root).as_posix())
            for item in sorted(top.rglob("*")):
                if item.is_file():
                    zf.write(item, item.relative_to(root).as_posix())
                    count += 1

    return ArchiveInfo(path=dest, size_bytes=dest.stat().st_size, file_count=count)
