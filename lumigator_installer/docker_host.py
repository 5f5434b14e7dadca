from __future__ import annotations

import logging
import os
from typing import MutableMapping, Optional

from .lib.paths import RootlessPaths
from .lib.shellrc import ensure_line, remove_lines

logger = logging.getLogger(__name__)


def rootless_env_hint(docker_host: str) -> str:
    return (
        "For rootless Docker, set this environment variable to reach the daemon:\n"
        f"  export DOCKER_HOST={docker_host}\n"
        "Add it to your shell profile (e.g., ~/.bashrc or ~/.zshrc) for persistence:\n"
        f'  echo "export DOCKER_HOST={docker_host}" >> ~/.bashrc'
    )


def _already_persisted(paths: RootlessPaths) -> bool:
    bashrc = paths.bashrc.read_text(encoding="utf-8") if paths.bashrc.exists() else ""
    if "DOCKER_HOST=unix://" in bashrc:
        return True
    if paths.env_file.name in bashrc and paths.env_file.exists():
        return "DOCKER_HOST=" in paths.env_file.read_text(encoding="utf-8")
    return False


def configure_docker_host(
    mode: str,
    paths: RootlessPaths,
    env: Optional[MutableMapping[str, str]] = None,
    *,
    dry_run: bool = False,
) -> Optional[str]:
    """Point DOCKER_HOST at the daemon for `mode`. Returns the value now in env."""

    env = os.environ if env is None else env

    if mode == "rootless":
        logger.info("Configuring DOCKER_HOST for rootless mode...")
        env["DOCKER_HOST"] = paths.docker_host
        if not _already_persisted(paths):
            ensure_line(
                paths.bashrc,
                f"export DOCKER_HOST={paths.docker_host}",
                marker="DOCKER_HOST=unix://",
                dry_run=dry_run,
            )
        logger.info("DOCKER_HOST has been set to: %s", paths.docker_host)
        return paths.docker_host

    if mode == "root":
        logger.info("Using system-wide Docker (root installation). No DOCKER_HOST override needed.")
        env.pop("DOCKER_HOST", None)
        remove_lines(paths.bashrc, r"DOCKER_HOST=", dry_run=dry_run)
        return None

    logger.warning("Could not determine Docker installation mode.")
    return env.get("DOCKER_HOST")
