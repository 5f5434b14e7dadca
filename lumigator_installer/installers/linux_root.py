from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import InstallerError, MissingPrerequisiteError, UnsupportedPlatformError
from ..installer_config import InstallerConfig
from ..lib.command import command_exists, is_root, run_cmd, succeeds, sudo_argv
from ..lib.docker_status import check_compose_installed, check_docker_installed, compose_version_report
from ..lib.hostinfo import SUPPORTED_DISTROS
from ..lib.manifests import load_docker_manifest
from ..lib.packages import (
    add_docker_apt_repository,
    apt_install,
    apt_remove,
    apt_update,
    install_compose_plugin_via_package_manager,
)
from ..lib.systemd import is_active, systemctl

logger = logging.getLogger(__name__)


def _require_sudo() -> None:
    if not is_root() and not command_exists("sudo"):
        raise MissingPrerequisiteError("sudo is required for a root-based installation.")


def install_docker_linux_root(cfg: InstallerConfig, host: Dict[str, Any]) -> str:
    distro = host.get("distro")
    if distro not in SUPPORTED_DISTROS:
        raise UnsupportedPlatformError(
            f"Unsupported Linux distribution: {distro}. Supported: {', '.join(SUPPORTED_DISTROS)}"
        )
    codename = host.get("codename")
    if not codename:
        raise UnsupportedPlatformError("Cannot detect the distribution codename from /etc/os-release.")

    _require_sudo()
    dry_run = cfg.dry_run
    apt = load_docker_manifest()["apt"]

    logger.info("==> Installing Docker and Compose (root-based) on %s %s...", distro, codename)

    apt_remove(apt["conflicting"], dry_run=dry_run)
    apt_update(dry_run=dry_run)
    apt_install(apt["prerequisites"], dry_run=dry_run)
    add_docker_apt_repository(str(distro), str(codename), dry_run=dry_run)
    apt_update(dry_run=dry_run)
    apt_install(apt["engine"], dry_run=dry_run)

    if not systemctl(["enable", "docker"], user=False, check=False, dry_run=dry_run).ok:
        logger.warning("Failed to enable Docker service.")
    systemctl(["start", "docker"], user=False, dry_run=dry_run)

    user = host.get("user")
    if user and user != "root":
        if not run_cmd(sudo_argv(["usermod", "-aG", "docker", user]), check=False, dry_run=dry_run).ok:
            logger.warning("Failed to add %s to the docker group.", user)
        logger.info("Log out and back in for group changes to take effect.")

    if not dry_run:
        r = run_cmd(["docker", "--version"], check=False)
        if not r.ok:
            raise InstallerError(
                "Docker installation verification failed. Try logging out and back in, "
                "or use 'sudo docker --version' to verify."
            )
        logger.info("Docker installed successfully. Version: %s", r.stdout.strip())
    return "installed_apt"


def ensure_docker_running_linux(*, dry_run: bool = False) -> bool:
    """Start the system docker service if inactive. Returns True if it had to start it."""

    logger.info("Checking if Docker service is active...")
    if is_active("docker", user=False):
        return False
    logger.info("Starting Docker service...")
    systemctl(["start", "docker"], user=False, dry_run=dry_run)
    systemctl(["enable", "docker"], user=False, check=False, dry_run=dry_run)
    return True


def ensure_compose_linux_root(cfg: InstallerConfig) -> str:
    logger.info("==> Installing Docker Compose plugin on Linux (root-based)...")
    if not check_docker_installed():
        raise MissingPrerequisiteError(
            "Docker is not installed. Please install Docker first: https://docs.docker.com/engine/install/"
        )
    if not is_root() and not succeeds(["sudo", "-n", "true"]):
        raise MissingPrerequisiteError(
            "sudo privileges required for root-based installation. "
            "Run as root or use the rootless option (-r)."
        )

    manager = install_compose_plugin_via_package_manager(dry_run=cfg.dry_run)

    if not cfg.dry_run and not check_compose_installed():
        raise InstallerError("Failed to install Docker Compose plugin.")
    logger.info("==> Docker Compose plugin installed successfully (%s).", manager)
    compose_version_report()
    return manager
