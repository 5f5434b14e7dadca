from __future__ import annotations

import logging
import os
import re
import stat
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .command import command_exists, run_cmd, succeeds

logger = logging.getLogger(__name__)

_ROOTLESS_HOST_RE = re.compile(r"^unix:///run/user/[0-9]+/docker\.sock")


def check_docker_installed() -> bool:
    return command_exists("docker")


def check_docker_running() -> bool:
    if succeeds(["docker", "info"]):
        return True
    logger.info("Docker daemon is NOT running.")
    return False


def check_compose_installed() -> bool:
    return succeeds(["docker", "compose", "version"]) or succeeds(["docker-compose", "version"])


def compose_version_report() -> Tuple[Optional[str], str]:
    """Which Compose flavour answers, and its version banner."""

    r = run_cmd(["docker", "compose", "version"], check=False)
    if r.ok:
        logger.info("Docker Compose v2 installed: %s", r.stdout.strip())
        return "plugin", r.stdout.strip()

    r = run_cmd(["docker-compose", "version"], check=False)
    if r.ok:
        logger.info("Legacy Docker Compose installed: %s", r.stdout.strip())
        logger.warning("Consider upgrading to Compose v2 for better compatibility.")
        return "legacy", r.stdout.strip()

    return None, ""


def detect_docker_mode() -> str:
    if succeeds(["systemctl", "is-active", "--quiet", "docker"]):
        return "root"
    if succeeds(["systemctl", "--user", "is-active", "--quiet", "docker-rootless"]):
        return "rootless"
    return "unknown"


def _is_socket(path: Path) -> bool:
    try:
        return stat.S_ISSOCK(path.stat().st_mode)
    except OSError:
        return False


def is_rootless_docker(uid: int, env: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if env is None else env
    docker_host = env.get("DOCKER_HOST") or ""
    if docker_host and _ROOTLESS_HOST_RE.match(docker_host):
        return True
    return _is_socket(Path(f"/run/user/{uid}/docker.sock"))


def docker_info_mentions_rootless() -> bool:
    r = run_cmd(["docker", "info"], check=False)
    return r.ok and "rootless" in r.stdout
