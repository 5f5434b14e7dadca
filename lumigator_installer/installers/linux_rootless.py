"""Rootless Docker bootstrap from static binaries.

Layout (all under $HOME, nothing needs root once uidmap/subuid are set up):
  ~/bin                          docker, dockerd, rootlesskit, slirp4netns, ...
  ~/.docker/cli-plugins          docker-compose (Compose v2 plugin)
  ~/.docker-rootless             downloaded tarballs, pid file, dockerd.log
  ~/.local/share/docker          daemon data root
  ~/.config/systemd/user         docker-rootless.service
  ~/.bashrc.docker               PATH + DOCKER_HOST, sourced from ~/.bashrc and ~/.profile
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ..errors import DaemonStartError, ExtractionError, InstallerError, MissingPrerequisiteError, UserAbort
from ..installer_config import InstallerConfig
from ..lib.archives import extract_tar
from ..lib.command import command_exists, run_cmd, spawn_background, succeeds
from ..lib.docker_status import check_compose_installed, check_docker_installed
from ..lib.downloads import (
    build_client,
    compose_url,
    docker_static_url,
    download_file,
    latest_compose_version,
    latest_docker_version,
    rootless_extras_url,
    slirp4netns_url,
)
from ..lib.fsops import make_executable, remove_glob, remove_path
from ..lib.hostinfo import HostArch, host_arch
from ..lib.manifests import load_docker_manifest
from ..lib.paths import RootlessPaths
from ..lib.prompt import ask
from ..lib.retry import wait_until
from ..lib.shellrc import ensure_source_line, write_env_file
from ..lib.systemd import ROOTLESS_UNIT, is_active, render_rootless_unit, systemctl, user_systemd_available, write_unit

logger = logging.getLogger(__name__)


def _has_subid(path: str, user: str) -> bool:
    p = Path(path)
    if not p.exists():
        return False
    prefix = f"{user}:"
    return any(line.startswith(prefix) for line in p.read_text(encoding="utf-8").splitlines())


def check_rootless_prerequisites(
    host: Dict[str, Any],
    *,
    subuid_path: str = "/etc/subuid",
    subgid_path: str = "/etc/subgid",
) -> None:
    if int(host["uid"]) == 0:
        raise MissingPrerequisiteError("Rootless mode must not run as root. Run as a regular user.")

    for cmd, pkg in load_docker_manifest()["rootless"]["prerequisites"].items():
        if not command_exists(cmd):
            raise MissingPrerequisiteError(f"{cmd} is required. Install it with 'apt install {pkg}' (needs admin).")

    if not succeeds(["unshare", "--user", "--pid", "echo", "YES"]):
        raise MissingPrerequisiteError(
            "User namespaces not supported. Ask admin to enable with "
            "'sysctl -w kernel.unprivileged_userns_clone=1'."
        )

    user = str(host["user"])
    if not (_has_subid(subuid_path, user) and _has_subid(subgid_path, user)):
        raise MissingPrerequisiteError(
            f"Sub-UID/GID ranges missing for {user}. "
            f"Ask admin to add '{user}:100000:65536' to {subuid_path} and {subgid_path}."
        )
    logger.info("Rootless prerequisites satisfied for %s", user)


def rootless_env(paths: RootlessPaths) -> Dict[str, str]:
    return {
        "PATH": f"{paths.bin_dir}:{os.environ.get('PATH', '')}",
        "DOCKER_HOST": paths.docker_host,
        "XDG_RUNTIME_DIR": str(paths.runtime_dir),
    }


def stop_rootless_daemon(paths: RootlessPaths, user: str, *, dry_run: bool = False) -> None:
    logger.info("Stopping any running rootless Docker processes...")
    if command_exists("systemctl"):
        systemctl(["stop", ROOTLESS_UNIT], user=True, check=False, dry_run=dry_run)
        systemctl(["disable", ROOTLESS_UNIT], user=True, check=False, dry_run=dry_run)

    if paths.pid_file.exists():
        pid = paths.pid_file.read_text(encoding="utf-8").strip()
        if pid.isdigit():
            run_cmd(["kill", pid], check=False, dry_run=dry_run)
        remove_path(paths.pid_file, dry_run=dry_run)

    for pattern in load_docker_manifest()["rootless"]["process_patterns"]:
        run_cmd(["pkill", "-u", user, "-f", pattern], check=False, dry_run=dry_run)


def remove_rootless_files(paths: RootlessPaths, *, dry_run: bool = False) -> None:
    remove_path(paths.rootless_dir, dry_run=dry_run)
    remove_glob(paths.bin_dir, "docker*", dry_run=dry_run)
    remove_path(paths.data_root, dry_run=dry_run)
    remove_path(paths.legacy_unit_file, dry_run=dry_run)
    remove_path(paths.unit_file, dry_run=dry_run)
    remove_path(paths.bin_dir / "slirp4netns", dry_run=dry_run)
    remove_path(paths.compose_plugin, dry_run=dry_run)


def resolve_docker_version(cfg: InstallerConfig, arch: HostArch, client: Optional[httpx.Client]) -> str:
    if cfg.docker_version != "latest" or cfg.dry_run:
        return cfg.docker_version
    return latest_docker_version(client, arch.static)


def resolve_compose_version(cfg: InstallerConfig, client: Optional[httpx.Client]) -> str:
    if cfg.compose_version != "latest" or cfg.dry_run:
        return cfg.compose_version
    return latest_compose_version(client)


def _fetch(url: str, dest: Path, client: httpx.Client, *, dry_run: bool) -> None:
    if dry_run:
        logger.info("Would download %s -> %s", url, dest)
        return
    download_file(url, dest, client)


def _fetch_binaries(
    cfg: InstallerConfig,
    arch: HostArch,
    paths: RootlessPaths,
    client: httpx.Client,
) -> Dict[str, str]:
    dry_run = cfg.dry_run
    docker_version = resolve_docker_version(cfg, arch, client)
    compose_version = resolve_compose_version(cfg, client)
    logger.info(
        "==> Installing Docker %s and Compose %s (rootless plugin) on Linux...", docker_version, compose_version
    )

    docker_tgz = paths.rootless_dir / "docker.tgz"
    extras_tgz = paths.rootless_dir / "docker-rootless.tgz"

    _fetch(docker_static_url(docker_version, arch.static), docker_tgz, client, dry_run=dry_run)
    _fetch(rootless_extras_url(docker_version, arch.static), extras_tgz, client, dry_run=dry_run)
    if not dry_run:
        extract_tar(docker_tgz, paths.bin_dir, strip_components=1)
        extract_tar(extras_tgz, paths.bin_dir, strip_components=1)

    _fetch(
        slirp4netns_url(cfg.slirp4netns_version, arch.slirp),
        paths.bin_dir / "slirp4netns",
        client,
        dry_run=dry_run,
    )
    _fetch(compose_url(compose_version, "linux", arch.compose), paths.compose_plugin, client, dry_run=dry_run)

    return {"docker": docker_version, "compose": compose_version, "slirp4netns": cfg.slirp4netns_version}


def _finalize_binaries(paths: RootlessPaths) -> None:
    rootless = load_docker_manifest()["rootless"]
    for name in rootless["required_binaries"]:
        p = paths.bin_dir / name
        if not p.is_file():
            raise ExtractionError(f"Required binary {name} not found in {paths.bin_dir}")
        make_executable(p)
    for name in rootless["optional_binaries"]:
        p = paths.bin_dir / name
        if p.is_file():
            make_executable(p)
            logger.info("Optional binary %s found and made executable", name)
    if not paths.compose_plugin.is_file():
        raise ExtractionError(f"docker-compose missing in {paths.cli_plugins_dir}")
    make_executable(paths.compose_plugin)


def persist_rootless_env(paths: RootlessPaths, *, dry_run: bool = False) -> None:
    write_env_file(
        paths.env_file,
        {"PATH": f"{paths.bin_dir}:$PATH", "DOCKER_HOST": paths.docker_host},
        dry_run=dry_run,
    )
    ensure_source_line(paths.bashrc, paths.env_file, dry_run=dry_run)
    ensure_source_line(paths.profile, paths.env_file, dry_run=dry_run)
    # Equivalent of sourcing ~/.bashrc for the rest of this process.
    os.environ.update(rootless_env(paths))


def start_rootless_daemon(paths: RootlessPaths, *, dry_run: bool = False) -> str:
    """Run the daemon under systemd --user if available, else as a background process."""

    if user_systemd_available():
        logger.info("Setting up systemd user service...")
        write_unit(paths.unit_file, render_rootless_unit(paths, extra_path=os.environ.get("PATH", "")), dry_run=dry_run)
        systemctl(["daemon-reload"], user=True, dry_run=dry_run)
        systemctl(["enable", ROOTLESS_UNIT], user=True, dry_run=dry_run)
        systemctl(["restart", ROOTLESS_UNIT], user=True, dry_run=dry_run)
        return "systemd"

    logger.info("systemd --user unavailable. Running dockerd-rootless.sh in background...")
    script = paths.bin_dir / "dockerd-rootless.sh"
    if not dry_run and not script.is_file():
        raise MissingPrerequisiteError(f"Cannot find dockerd-rootless.sh at {paths.bin_dir}.")
    spawn_background(
        [
            str(script),
            "--data-root",
            str(paths.data_root),
            "--pidfile",
            str(paths.pid_file),
        ],
        log_path=str(paths.dockerd_log),
        env=rootless_env(paths),
        dry_run=dry_run,
    )
    return "background"


def _log_daemon_diagnostics(paths: RootlessPaths, started_via: str) -> None:
    if started_via == "systemd":
        status = systemctl(["status", ROOTLESS_UNIT, "--no-pager"], user=True, check=False)
        logger.error("Service status:\n%s", status.stdout.strip())
    if paths.dockerd_log.exists():
        tail = paths.dockerd_log.read_text(encoding="utf-8", errors="replace").splitlines()[-50:]
        logger.error("Docker log (%s):\n%s", paths.dockerd_log, "\n".join(tail))
    logger.error("Check logs with 'journalctl --user -u %s --no-pager --lines=50'", ROOTLESS_UNIT)


def verify_rootless_daemon(cfg: InstallerConfig, paths: RootlessPaths, started_via: str) -> int:
    docker_bin = str(paths.bin_dir / "docker")
    env = rootless_env(paths)

    def _ready() -> bool:
        return succeeds([docker_bin, "info"], env=env) and succeeds([docker_bin, "compose", "version"], env=env)

    logger.info("Verifying Docker and Compose v2 startup...")
    try:
        attempt = wait_until(
            _ready,
            attempts=cfg.verify_attempts,
            delay=cfg.verify_retry_delay,
            initial_delay=cfg.verify_initial_delay,
            describe="Rootless Docker verification",
        )
    except DaemonStartError:
        _log_daemon_diagnostics(paths, started_via)
        raise

    if cfg.verify_with_hello_world:
        logger.info("Verifying Docker installation by running 'hello-world' container...")
        if not run_cmd([docker_bin, "run", "--rm", "hello-world"], check=False, env=env).ok:
            _log_daemon_diagnostics(paths, started_via)
            raise DaemonStartError("Docker test failed! The hello-world container did not run.")
        logger.info("Docker is working correctly!")
    return attempt


def install_docker_linux_rootless(
    cfg: InstallerConfig,
    host: Dict[str, Any],
    paths: RootlessPaths,
    *,
    reinstall: bool = False,
    client: Optional[httpx.Client] = None,
) -> Dict[str, Any]:
    check_rootless_prerequisites(host)
    dry_run = cfg.dry_run

    if not reinstall and check_docker_installed() and check_compose_installed():
        logger.info("Docker and Compose are already installed; making sure the rootless service runs.")
        if command_exists("systemctl") and not is_active(ROOTLESS_UNIT, user=True):
            systemctl(["start", ROOTLESS_UNIT], user=True, check=False, dry_run=dry_run)
        return {"action": "already_installed"}

    if not ask("This will remove existing rootless Docker files. Proceed? (y/N):", assume_yes=cfg.assume_yes):
        raise UserAbort()

    stop_rootless_daemon(paths, str(host["user"]), dry_run=dry_run)
    remove_rootless_files(paths, dry_run=dry_run)
    if not dry_run:
        for d in (paths.rootless_dir, paths.bin_dir, paths.data_root, paths.cli_plugins_dir, paths.runtime_dir):
            d.mkdir(parents=True, exist_ok=True)

    http = client or build_client(cfg.http_timeout_seconds)
    try:
        versions = _fetch_binaries(cfg, host_arch(host), paths, http)
    finally:
        if client is None:
            http.close()

    if not dry_run:
        _finalize_binaries(paths)

    logger.info("Setting environment variables...")
    persist_rootless_env(paths, dry_run=dry_run)

    started_via = start_rootless_daemon(paths, dry_run=dry_run)
    attempt = None
    if not dry_run:
        attempt = verify_rootless_daemon(cfg, paths, started_via)

    logger.info(
        "Docker %s and Compose %s rootless installed successfully!", versions["docker"], versions["compose"]
    )
    return {"action": "installed_rootless", "versions": versions, "daemon": started_via, "verified_on_attempt": attempt}


def ensure_compose_linux_rootless(
    cfg: InstallerConfig,
    host: Dict[str, Any],
    paths: RootlessPaths,
    *,
    client: Optional[httpx.Client] = None,
) -> str:
    logger.info("==> Installing Docker Compose in rootless mode...")
    if not check_docker_installed():
        raise MissingPrerequisiteError(
            "Docker is not installed. Please install rootless Docker first "
            "(https://docs.docker.com/engine/security/rootless/)."
        )

    arch = host_arch(host)
    http = client or build_client(cfg.http_timeout_seconds)
    try:
        version = resolve_compose_version(cfg, http)
        _fetch(compose_url(version, "linux", arch.compose), paths.compose_plugin, http, dry_run=cfg.dry_run)
    finally:
        if client is None:
            http.close()

    if cfg.dry_run:
        return version

    make_executable(paths.compose_plugin)
    r = run_cmd([str(paths.compose_plugin), "version"], check=False)
    if not r.ok:
        raise InstallerError("Failed to install Docker Compose in rootless mode.")
    logger.info("==> Docker Compose %s installed in %s (%s)", version, paths.cli_plugins_dir, r.stdout.strip())
    return version
