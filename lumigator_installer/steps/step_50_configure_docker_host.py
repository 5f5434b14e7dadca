from __future__ import annotations

import logging
from typing import Any, Dict

from ..docker_host import configure_docker_host
from ..installer_config import InstallerConfig
from ..lib.docker_status import detect_docker_mode
from ..lib.paths import rootless_paths_for
from ..state_store import record_decision

logger = logging.getLogger(__name__)


class ConfigureDockerHostStep:
    step_id = "50_configure_docker_host"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = InstallerConfig(raw=state.get("config") or {})
        host = state.get("platform") or {}

        if host.get("os") != "linux":
            logger.info("Docker Desktop manages DOCKER_HOST on %s; nothing to configure.", host.get("os"))
            record_decision(state, "docker_host_mode", "desktop")
            return state

        mode = detect_docker_mode()
        if mode == "unknown":
            # A daemon spawned without systemd is invisible to systemctl.
            installed = (((state.get("execution") or {}).get("decisions") or {}).get("docker_install") or {})
            if installed.get("mode") == "rootless":
                mode = "rootless"

        value = configure_docker_host(mode, rootless_paths_for(host), dry_run=cfg.dry_run)
        record_decision(state, "docker_host_mode", mode)
        record_decision(state, "docker_host", value)
        return state
