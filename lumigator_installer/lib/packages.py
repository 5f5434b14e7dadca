from __future__ import annotations

import logging
from typing import Sequence

from ..errors import UnsupportedPlatformError
from .command import command_exists, run_cmd, sudo_argv
from .downloads import docker_apt_gpg_url, docker_apt_repo_url, fetch_text
from .manifests import load_docker_manifest

logger = logging.getLogger(__name__)


def apt_update(*, dry_run: bool = False) -> None:
    run_cmd(sudo_argv(["apt-get", "update", "-y"]), dry_run=dry_run)


def apt_install(packages: Sequence[str], *, dry_run: bool = False) -> None:
    if not packages:
        return
    run_cmd(sudo_argv(["apt-get", "install", "-y", *packages]), dry_run=dry_run)


def apt_remove(packages: Sequence[str], *, check: bool = False, dry_run: bool = False) -> None:
    if not packages:
        return
    run_cmd(sudo_argv(["apt-get", "remove", "-y", *packages]), check=check, dry_run=dry_run)


def apt_purge(packages: Sequence[str], *, check: bool = False, dry_run: bool = False) -> None:
    if not packages:
        return
    run_cmd(sudo_argv(["apt-get", "purge", "-y", *packages]), check=check, dry_run=dry_run)


def apt_autoremove(*, check: bool = False, dry_run: bool = False) -> None:
    run_cmd(sudo_argv(["apt-get", "autoremove", "-y"]), check=check, dry_run=dry_run)


def dpkg_architecture(*, dry_run: bool = False) -> str:
    if dry_run:
        return "amd64"
    return run_cmd(["dpkg", "--print-architecture"]).stdout.strip()


def add_docker_apt_repository(distro: str, codename: str, *, dry_run: bool = False) -> None:
    """Install Docker's signing key and apt source for distro/codename."""

    apt = load_docker_manifest()["apt"]
    keyring = str(apt["keyring"])
    sources_list = str(apt["sources_list"])

    run_cmd(sudo_argv(["mkdir", "-p", "/etc/apt/keyrings"]), dry_run=dry_run)
    # A stale key makes gpg --dearmor prompt for overwrite.
    run_cmd(sudo_argv(["rm", "-f", keyring]), dry_run=dry_run)

    key_text = "" if dry_run else fetch_text(docker_apt_gpg_url(distro))
    run_cmd(sudo_argv(["gpg", "--dearmor", "-o", keyring]), input_text=key_text, dry_run=dry_run)
    run_cmd(sudo_argv(["chmod", "a+r", keyring]), dry_run=dry_run)

    arch = dpkg_architecture(dry_run=dry_run)
    line = f"deb [arch={arch} signed-by={keyring}] {docker_apt_repo_url(distro)} {codename} stable\n"
    run_cmd(sudo_argv(["tee", sources_list]), input_text=line, dry_run=dry_run)
    logger.info("Configured Docker apt repo: %s", line.strip())


def brew_available() -> bool:
    return command_exists("brew")


def brew_install(formula: str, *, cask: bool = False, dry_run: bool = False) -> None:
    argv = ["brew", "install"]
    if cask:
        argv.append("--cask")
    run_cmd([*argv, formula], dry_run=dry_run)


def install_compose_plugin_via_package_manager(*, dry_run: bool = False) -> str:
    """Install the compose plugin with whichever package manager exists. Returns its name."""

    if command_exists("apt-get"):
        apt_update(dry_run=dry_run)
        apt_install(["docker-compose-plugin"], dry_run=dry_run)
        return "apt-get"
    if command_exists("dnf"):
        run_cmd(sudo_argv(["dnf", "install", "-y", "docker-compose-plugin"]), dry_run=dry_run)
        return "dnf"
    if command_exists("pacman"):
        run_cmd(sudo_argv(["pacman", "-Syu", "--noconfirm", "docker-compose"]), dry_run=dry_run)
        return "pacman"
    raise UnsupportedPlatformError(
        "Unsupported package manager. Install docker-compose-plugin manually: "
        "https://docs.docker.com/compose/install/"
    )
