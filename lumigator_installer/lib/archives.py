from __future__ import annotations

import logging
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional

from ..errors import ExtractionError

logger = logging.getLogger(__name__)


def _stripped(name: str, strip_components: int) -> Optional[PurePosixPath]:
    parts = PurePosixPath(name).parts[strip_components:]
    if not parts:
        return None
    rel = PurePosixPath(*parts)
    if rel.is_absolute() or ".." in rel.parts:
        raise ExtractionError(f"Refusing unsafe archive member: {name}")
    return rel


def extract_tar(
    archive: str | Path,
    dest: str | Path,
    *,
    strip_components: int = 0,
    members: Optional[Iterable[str]] = None,
    overwrite: bool = True,
) -> List[Path]:
    """tar -xzf archive -C dest --strip-components=N [members...]

    Only regular files and directories are extracted. Returns written files.
    """

    out_dir = Path(dest)
    out_dir.mkdir(parents=True, exist_ok=True)
    wanted = set(members) if members is not None else None
    written: List[Path] = []

    try:
        with tarfile.open(str(archive), "r:*") as tf:
            found = set()
            for info in tf.getmembers():
                name = info.name.rstrip("/")
                if name.startswith("./"):
                    name = name[2:]
                if wanted is not None and name not in wanted:
                    continue
                rel = _stripped(name, strip_components)
                if rel is None:
                    continue
                found.add(name)
                target = out_dir / Path(*rel.parts)
                if info.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                if not info.isfile():
                    continue
                if target.exists() and not overwrite:
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                src = tf.extractfile(info)
                if src is None:
                    continue
                with src, open(target, "wb") as fh:
                    shutil.copyfileobj(src, fh)
                target.chmod(info.mode & 0o777 or 0o644)
                written.append(target)
    except (tarfile.TarError, OSError, EOFError) as e:
        raise ExtractionError(f"Failed to extract {archive}: {e}") from e

    if wanted is not None:
        missing = sorted(wanted - found)
        if missing:
            raise ExtractionError(f"Missing members in {archive}: {', '.join(missing)}")

    logger.info("Extracted %d files from %s into %s", len(written), archive, out_dir)
    return written


def extract_zip_single_root(archive: str | Path, dest: str | Path) -> str:
    """Unpack a GitHub source zip and move its top-level folder's contents into dest.

    Hidden files are moved too. Returns the top-level folder name.
    """

    out_dir = Path(dest)
    out_dir.mkdir(parents=True, exist_ok=True)

    with tempfile.TemporaryDirectory(prefix="lumigator-unzip-") as tmp:
        tmp_dir = Path(tmp)
        try:
            with zipfile.ZipFile(str(archive)) as zf:
                for name in zf.namelist():
                    _stripped(name, 0)
                zf.extractall(tmp_dir)
                # extractall drops the unix mode kept in external_attr.
                for info in zf.infolist():
                    mode = (info.external_attr >> 16) & 0o777
                    if mode and not info.is_dir():
                        (tmp_dir / info.filename).chmod(mode)
        except (zipfile.BadZipFile, OSError) as e:
            raise ExtractionError(f"Failed to extract {archive}: {e}") from e

        roots = [p for p in tmp_dir.iterdir()]
        if len(roots) != 1 or not roots[0].is_dir():
            raise ExtractionError(
                f"Expected a single top-level directory in {archive}, found {sorted(p.name for p in roots)}"
            )
        root = roots[0]

        for item in root.iterdir():
            shutil.move(str(item), str(out_dir / item.name))

    logger.info("Unpacked %s (%s) into %s", archive, root.name, out_dir)
    return root.name
