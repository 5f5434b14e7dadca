from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import UninstallVerificationError
from .lib.command import command_exists, run_cmd, sudo_argv
from .lib.fsops import remove_path
from .lib.manifests import load_docker_manifest
from .lib.packages import apt_autoremove, apt_purge, apt_remove
from .lib.paths import RootlessPaths
from .lib.shellrc import remove_source_line
from .lib.systemd import ROOTLESS_UNIT, systemctl

logger = logging.getLogger(__name__)


def uninstall_rootless(paths: RootlessPaths, user: str, *, dry_run: bool = False) -> List[str]:
    """Remove a rootless install. Every step is best-effort. Returns removed paths."""

    rootless = load_docker_manifest()["rootless"]
    removed: List[str] = []

    logger.info("Stopping Docker rootless service...")
    if command_exists("systemctl"):
        systemctl(["stop", ROOTLESS_UNIT], user=True, check=False, dry_run=dry_run)
        systemctl(["disable", ROOTLESS_UNIT], user=True, check=False, dry_run=dry_run)

    logger.info("Killing any remaining Docker processes...")
    for pattern in rootless["process_patterns"]:
        run_cmd(["pkill", "-u", user, "-f", pattern], check=False, dry_run=dry_run)

    logger.info("Removing Docker and Compose binaries...")
    binaries = [
        *rootless["required_binaries"],
        *rootless["optional_binaries"],
        "docker-compose",
    ]
    candidates: List[Path] = [paths.bin_dir / b for b in binaries]
    candidates += [paths.compose_plugin]

    logger.info("Removing rootless Docker data...")
    candidates += [paths.rootless_dir, paths.data_root, paths.docker_sock, paths.home / "run" / "docker.sock"]

    logger.info("Removing systemd service files...")
    candidates += [paths.unit_file, paths.legacy_unit_file]

    for p in candidates:
        if remove_path(p, dry_run=dry_run):
            removed.append(str(p))

    if command_exists("systemctl"):
        systemctl(["daemon-reload"], user=True, check=False, dry_run=dry_run)
        systemctl(["reset-failed"], user=True, check=False, dry_run=dry_run)

    logger.info("Removing environment configuration...")
    if remove_path(paths.env_file, dry_run=dry_run):
        removed.append(str(paths.env_file))
    remove_source_line(paths.bashrc, paths.env_file, dry_run=dry_run)
    remove_source_line(paths.profile, paths.env_file, dry_run=dry_run)

    # Drop our bin dir from this process so verification sees the new state.
    _drop_from_path(str(paths.bin_dir))
    os.environ.pop("DOCKER_HOST", None)

    logger.info("Docker and Docker Compose rootless installation removed.")
    return removed


def uninstall_root(*, dry_run: bool = False) -> None:
    """Remove the system-wide apt install. Every step is best-effort."""

    manifest = load_docker_manifest()
    packages = list(manifest["apt"]["engine"])

    logger.info("Stopping and disabling Docker services...")
    systemctl(["stop", "docker"], user=False, check=False, dry_run=dry_run)
    systemctl(["disable", "docker"], user=False, check=False, dry_run=dry_run)

    if command_exists("apt-get"):
        logger.info("Uninstalling Docker packages...")
        apt_remove(packages, dry_run=dry_run)
        apt_purge(packages, dry_run=dry_run)
        apt_autoremove(dry_run=dry_run)

    logger.info("Removing Docker files, systemd units, repository and GPG key...")
    for p in manifest["uninstall"]["system_paths"]:
        run_cmd(sudo_argv(["rm", "-rf", str(p)]), check=False, dry_run=dry_run)

    logger.info("Reloading systemd and updating package lists...")
    systemctl(["daemon-reexec"], user=False, check=False, dry_run=dry_run)
    if command_exists("apt-get"):
        run_cmd(sudo_argv(["apt-get", "update", "-y"]), check=False, dry_run=dry_run)


def _drop_from_path(directory: str) -> None:
    parts = [p for p in os.environ.get("PATH", "").split(os.pathsep) if p and p != directory]
    os.environ["PATH"] = os.pathsep.join(parts)


def verify_removed(
    extra_dirs: Optional[Iterable[str | Path]] = None,
    *,
    search_path: bool = True,
) -> Dict[str, Optional[str]]:
    """Raise if docker or docker-compose is still resolvable."""

    leftovers: Dict[str, Optional[str]] = {}
    for name in ("docker", "docker-compose"):
        found = shutil.which(name) if search_path else None
        if found is None:
            for d in extra_dirs or []:
                candidate = Path(d) / name
                if candidate.exists():
                    found = str(candidate)
                    break
        leftovers[name] = found

    still_there = {k: v for k, v in leftovers.items() if v}
    if still_there:
        raise UninstallVerificationError(
            "Docker is still installed: " + ", ".join(f"{k} -> {v}" for k, v in still_there.items())
        )
    logger.info("Docker has been completely removed (docker and docker-compose: command not found).")
    return leftovers


def uninstall(mode: str, paths: RootlessPaths, user: str, *, dry_run: bool = False) -> Dict[str, object]:
    if mode not in {"root", "rootless", "all"}:
        raise ValueError(f"mode must be root, rootless or all, got {mode!r}")

    result: Dict[str, object] = {"mode": mode}
    if mode in {"rootless", "all"}:
        result["removed"] = uninstall_rootless(paths, user, dry_run=dry_run)
    if mode in {"root", "all"}:
        uninstall_root(dry_run=dry_run)

    if not dry_run:
        # A rootless-only uninstall leaves any system-wide docker alone.
        verify_removed([paths.bin_dir], search_path=mode != "rootless")
    logger.info("Uninstallation complete!")
    return result
