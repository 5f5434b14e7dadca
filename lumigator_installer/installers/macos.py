from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ..errors import InstallerError, MissingPrerequisiteError
from ..installer_config import InstallerConfig
from ..lib.command import run_cmd, sudo_argv
from ..lib.docker_status import (
    check_compose_installed,
    check_docker_installed,
    check_docker_running,
    compose_version_report,
)
from ..lib.downloads import desktop_dmg_url, download_file
from ..lib.fsops import remove_path
from ..lib.hostinfo import host_arch
from ..lib.packages import brew_available, brew_install
from ..lib.retry import wait_until

logger = logging.getLogger(__name__)

DMG_PATH = "/tmp/Docker.dmg"
MOUNT_POINT = "/Volumes/Docker"


def _install_desktop_dmg(desktop_arch: str, *, client: Optional[httpx.Client], dry_run: bool) -> None:
    url = desktop_dmg_url(desktop_arch)
    logger.info("Homebrew not found. Installing Docker Desktop manually via DMG from %s", url)
    if dry_run:
        logger.info("Would download %s -> %s", url, DMG_PATH)
    else:
        download_file(url, DMG_PATH, client)

    run_cmd(["hdiutil", "attach", DMG_PATH, "-mountpoint", MOUNT_POINT, "-nobrowse"], dry_run=dry_run)
    try:
        logger.info("Copying Docker.app to /Applications (requires admin privileges)...")
        run_cmd(sudo_argv(["cp", "-R", f"{MOUNT_POINT}/Docker.app", "/Applications/"]), dry_run=dry_run)
    finally:
        run_cmd(["hdiutil", "detach", MOUNT_POINT], check=False, dry_run=dry_run)
        remove_path(DMG_PATH, dry_run=dry_run)


def install_docker_macos(
    cfg: InstallerConfig,
    host: Dict[str, Any],
    *,
    client: Optional[httpx.Client] = None,
) -> str:
    """Install and start Docker Desktop (Compose v2 included). Returns what was done."""

    logger.info("==> Installing Docker and Compose on macOS via Docker Desktop...")

    if check_docker_installed() and check_compose_installed() and check_docker_running():
        logger.info("Docker Desktop is already installed and running.")
        return "already_running"

    action = "started"
    if not check_docker_installed():
        if brew_available():
            logger.info("Installing Docker Desktop via Homebrew (includes Compose v2)...")
            brew_install("docker", cask=True, dry_run=cfg.dry_run)
            action = "installed_brew"
        else:
            _install_desktop_dmg(host_arch(host).desktop, client=client, dry_run=cfg.dry_run)
            action = "installed_dmg"

    logger.info("Starting Docker Desktop...")
    run_cmd(["open", "-a", "Docker"], dry_run=cfg.dry_run)

    if not cfg.dry_run:
        logger.info("Waiting for Docker to start...")
        wait_until(
            check_docker_running,
            attempts=cfg.desktop_wait_attempts,
            delay=cfg.desktop_wait_delay,
            describe="Docker Desktop startup",
        )
    logger.info("Docker Desktop (with Compose) is running!")
    return action


def ensure_compose_macos(cfg: InstallerConfig) -> str:
    logger.info("==> Checking if Docker Desktop (which includes Compose v2) is present...")
    run_cmd(["open", "-g", "-a", "Docker"], check=False, dry_run=cfg.dry_run)
    if not cfg.dry_run:
        time.sleep(3)

    if check_compose_installed():
        logger.info("Docker Compose is already installed via Docker Desktop.")
        compose_version_report()
        return "desktop"

    logger.warning(
        "Docker Desktop not found or Compose unavailable. Falling back to legacy docker-compose via Homebrew. "
        "For Compose v2, install Docker Desktop: https://www.docker.com/products/docker-desktop"
    )
    if not brew_available():
        raise MissingPrerequisiteError("Homebrew not found. Install Docker Desktop or Homebrew: https://brew.sh")

    brew_install("docker-compose", dry_run=cfg.dry_run)

    if not cfg.dry_run and not check_compose_installed():
        raise InstallerError("Failed to install Docker Compose on macOS.")
    compose_version_report()
    return "brew"
