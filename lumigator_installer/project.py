from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

import httpx

from .errors import ProjectExistsError, ProjectStartError
from .installer_config import InstallerConfig
from .lib.archives import extract_zip_single_root
from .lib.command import run_cmd
from .lib.downloads import build_client, download_file
from .lib.fsops import remove_path

logger = logging.getLogger(__name__)


def archive_url(cfg: InstallerConfig) -> str:
    return f"{cfg.repo_url}/archive/{cfg.repo_ref}{cfg.project_version}.zip"


def check_target_dir(cfg: InstallerConfig) -> Path:
    """Fail before touching anything if the target exists and overwrite is off."""

    target = cfg.project_target_dir
    if target.exists() and not cfg.overwrite:
        raise ProjectExistsError(f"Directory {target} exists. Use -o to overwrite.")
    return target


def install_project(cfg: InstallerConfig, *, client: Optional[httpx.Client] = None) -> Path:
    target = check_target_dir(cfg)
    logger.info("Installing Lumigator in %s", target)

    if target.exists():
        logger.info("Overwriting existing directory...")
        remove_path(target, dry_run=cfg.dry_run)

    url = archive_url(cfg)
    logger.info("Downloading Lumigator %s%s...", cfg.repo_ref, cfg.project_version)
    if cfg.dry_run:
        logger.info("Would download %s and unpack into %s", url, target)
        return target

    target.mkdir(parents=True, exist_ok=True)
    with tempfile.TemporaryDirectory(prefix="lumigator-") as tmp:
        zip_path = Path(tmp) / "lumigator.zip"
        http = client or build_client(cfg.http_timeout_seconds)
        try:
            download_file(url, zip_path, http)
        finally:
            if client is None:
                http.close()
        extract_zip_single_root(zip_path, target)

    return target


def project_env(mode: str, docker_host: Optional[str]) -> Dict[str, str]:
    if mode == "rootless" and docker_host:
        return {"DOCKER_HOST": docker_host}
    return {}


def open_url(url: str, os_type: str, *, dry_run: bool = False) -> bool:
    if os_type == "linux":
        argv = ["xdg-open", url]
    elif os_type == "macos":
        argv = ["open", url]
    else:
        logger.info("Open %s in your browser.", url)
        return False
    return run_cmd(argv, check=False, dry_run=dry_run).ok


def start_project(
    target: str | Path,
    *,
    mode: str,
    os_type: str,
    cfg: InstallerConfig,
    docker_host: Optional[str] = None,
) -> None:
    target_dir = Path(target)
    if not (target_dir / "Makefile").is_file():
        if not cfg.dry_run:
            raise ProjectStartError(f"Makefile not found in {target_dir}")

    logger.info("Starting Lumigator...")
    r = run_cmd(
        ["make", "start-lumigator"],
        check=False,
        cwd=str(target_dir),
        env=project_env(mode, docker_host or os.environ.get("DOCKER_HOST")),
        dry_run=cfg.dry_run,
    )
    if not r.ok:
        raise ProjectStartError(f"Failed to start Lumigator (make exited {r.returncode}).\n{r.stderr}")

    logger.info("Lumigator setup complete. Access at %s", cfg.app_url)
    if cfg.open_browser:
        open_url(cfg.app_url, os_type, dry_run=cfg.dry_run)
    logger.info("To stop, run 'make stop-lumigator' in %s", target_dir)
