from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


def write_env_file(path: str | Path, exports: Mapping[str, str], *, dry_run: bool = False) -> None:
    p = Path(path)
    text = "".join(f"export {k}={v}\n" for k, v in exports.items())
    if dry_run:
        logger.info("Would write %s", p)
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    logger.info("Wrote environment file %s", p)


def ensure_line(
    path: str | Path,
    line: str,
    *,
    marker: Optional[str] = None,
    dry_run: bool = False,
) -> bool:
    """Append line unless marker (or the line itself) already appears. Returns True if written."""

    p = Path(path)
    current = p.read_text(encoding="utf-8") if p.exists() else ""
    needle = marker if marker is not None else line
    if needle in current:
        return False

    if dry_run:
        logger.info("Would append to %s: %s", p, line)
        return True

    p.parent.mkdir(parents=True, exist_ok=True)
    prefix = "" if not current or current.endswith("\n") else "\n"
    with p.open("a", encoding="utf-8") as fh:
        fh.write(f"{prefix}{line}\n")
    logger.info("Appended to %s: %s", p, line)
    return True


def remove_lines(path: str | Path, pattern: str, *, dry_run: bool = False) -> int:
    """sed -i '/pattern/d'. Returns the number of removed lines."""

    p = Path(path)
    if not p.exists():
        return 0

    rx = re.compile(pattern)
    lines = p.read_text(encoding="utf-8").splitlines(keepends=True)
    kept = [ln for ln in lines if not rx.search(ln)]
    removed = len(lines) - len(kept)
    if removed and not dry_run:
        p.write_text("".join(kept), encoding="utf-8")
        logger.info("Removed %d line(s) matching %r from %s", removed, pattern, p)
    return removed


def ensure_source_line(rc: str | Path, env_file: str | Path, *, dry_run: bool = False) -> bool:
    return ensure_line(rc, f". {env_file}", marker=Path(env_file).name, dry_run=dry_run)


def remove_source_line(rc: str | Path, env_file: str | Path, *, dry_run: bool = False) -> int:
    return remove_lines(rc, re.escape(Path(env_file).name), dry_run=dry_run)
