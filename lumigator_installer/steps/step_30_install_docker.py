from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import UnsupportedPlatformError
from ..installer_config import InstallerConfig
from ..installers import (
    ensure_docker_running_linux,
    install_docker_linux_root,
    install_docker_linux_rootless,
    install_docker_macos,
)
from ..lib.docker_status import check_compose_installed, check_docker_installed, check_docker_running
from ..lib.paths import rootless_paths_for
from ..lib.prompt import ask
from ..state_store import record_decision

logger = logging.getLogger(__name__)


def choose_linux_mode(cfg: InstallerConfig) -> str:
    if cfg.mode != "auto":
        return cfg.mode
    # Unattended runs take the prompt's default answer (root-based).
    if cfg.assume_yes:
        return "root"
    if ask(
        "Do you want to install Docker and Compose in rootless mode (y) or root-based mode (n)? (y/N):"
    ):
        return "rootless"
    return "root"


class InstallDockerStep:
    step_id = "30_install_docker"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = InstallerConfig(raw=state.get("config") or {})
        host = state.get("platform") or {}
        os_type = host.get("os")

        if os_type == "macos":
            action = install_docker_macos(cfg, host)
            record_decision(state, "docker_install", {"mode": "desktop", "action": action})
            return state

        if os_type != "linux":
            raise UnsupportedPlatformError(f"Unsupported OS: {os_type}")

        installed = check_docker_installed() and check_compose_installed()
        if installed and not cfg.reinstall and check_docker_running():
            logger.info("Docker and Compose are already set up.")
            record_decision(state, "docker_install", {"mode": "existing", "action": "already_running"})
            return state

        mode = choose_linux_mode(cfg)
        if mode == "rootless":
            result = install_docker_linux_rootless(cfg, host, rootless_paths_for(host), reinstall=cfg.reinstall)
            record_decision(state, "docker_install", {"mode": "rootless", **result})
        elif installed and not cfg.reinstall:
            ensure_docker_running_linux(dry_run=cfg.dry_run)
            record_decision(state, "docker_install", {"mode": "root", "action": "started_service"})
        else:
            action = install_docker_linux_root(cfg, host)
            record_decision(state, "docker_install", {"mode": "root", "action": action})

        logger.info("Docker and Compose installation complete.")
        return state
