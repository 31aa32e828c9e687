from __future__ import annotations

import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

WORKING_AREA_PREFIX = "feed_harvest_"
STAGING_ROOT_PREFIX = "feed_harvest_stage_"


def remove_tree(path: str | Path) -> None:
    p = Path(path)
    if p.exists():
        shutil.rmtree(p, ignore_errors=True)


@contextmanager
def working_area(
    *,
    prefix: str = WORKING_AREA_PREFIX,
    base_dir: str | Path | None = None,
) -> Iterator[Path]:
    """
    A uniquely named scratch directory for one post attempt.

    The directory and everything in it is removed when the block exits, whether
    it succeeded or raised.
    """
    path = Path(tempfile.mkdtemp(prefix=prefix, dir=str(base_dir) if base_dir is not None else None))
    try:
        yield path
    finally:
        remove_tree(path)


def create_staging_root(*, base_dir: str | Path | None = None) -> Path:
    return Path(
        tempfile.mkdtemp(
            prefix=STAGING_ROOT_PREFIX,
            dir=str(base_dir) if base_dir is not None else None,
        )
    )
