from __future__ import annotations

import logging
from typing import Any, Dict

from ..docker_host import rootless_env_hint
from ..errors import UnsupportedPlatformError
from ..installer_config import InstallerConfig
from ..installers import ensure_compose_linux_root, ensure_compose_linux_rootless, ensure_compose_macos
from ..lib.docker_status import (
    check_compose_installed,
    compose_version_report,
    docker_info_mentions_rootless,
    is_rootless_docker,
)
from ..lib.paths import rootless_paths_for
from ..state_store import record_decision

logger = logging.getLogger(__name__)


def _wants_rootless(cfg: InstallerConfig, state: Dict[str, Any]) -> bool:
    decisions = (state.get("execution") or {}).get("decisions") or {}
    installed_mode = (decisions.get("docker_install") or {}).get("mode")
    if installed_mode in {"root", "rootless"}:
        return installed_mode == "rootless"
    if cfg.mode != "auto":
        return cfg.mode == "rootless"
    host = state.get("platform") or {}
    return is_rootless_docker(int(host.get("uid", 0))) or docker_info_mentions_rootless()


class EnsureComposeStep:
    step_id = "40_ensure_compose"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = InstallerConfig(raw=state.get("config") or {})
        host = state.get("platform") or {}
        os_type = host.get("os")

        if os_type == "macos":
            logger.info("==> macOS detected.")
            if check_compose_installed():
                logger.info("Docker Compose is already installed.")
                flavour, _ = compose_version_report()
                record_decision(state, "compose", {"source": flavour or "unknown"})
            else:
                record_decision(state, "compose", {"source": ensure_compose_macos(cfg)})
            return state

        if os_type != "linux":
            raise UnsupportedPlatformError(
                f"Unsupported OS: {os_type}. Install Docker Compose manually: https://docs.docker.com/compose/"
            )

        logger.info("==> Linux detected.")
        if check_compose_installed():
            logger.info("Docker Compose is already installed.")
            flavour, _ = compose_version_report()
            record_decision(state, "compose", {"source": flavour or "unknown"})
            return state

        if _wants_rootless(cfg, state):
            paths = rootless_paths_for(host)
            version = ensure_compose_linux_rootless(cfg, host, paths)
            logger.info(rootless_env_hint(paths.docker_host))
            record_decision(state, "compose", {"source": "rootless_plugin", "version": version})
        else:
            manager = ensure_compose_linux_root(cfg)
            record_decision(state, "compose", {"source": manager})
        return state
