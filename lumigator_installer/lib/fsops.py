from __future__ import annotations

import logging
import shutil
import stat
from pathlib import Path

logger = logging.getLogger(__name__)


def remove_path(path: str | Path, *, dry_run: bool = False) -> bool:
    """rm -rf path. Returns True if something was there."""

    p = Path(path)
    if not p.exists() and not p.is_symlink():
        return False
    if dry_run:
        logger.info("Would remove %s", p)
        return True
    if p.is_dir() and not p.is_symlink():
        shutil.rmtree(p)
    else:
        p.unlink()
    logger.info("Removed %s", p)
    return True


def remove_glob(directory: str | Path, pattern: str, *, dry_run: bool = False) -> int:
    d = Path(directory)
    if not d.is_dir():
        return 0
    return sum(1 for p in sorted(d.glob(pattern)) if remove_path(p, dry_run=dry_run))


def make_executable(path: str | Path) -> None:
    p = Path(path)
    mode = p.stat().st_mode
    p.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
