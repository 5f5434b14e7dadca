from __future__ import annotations

import logging
from typing import Any, Dict

from ..installer_config import InstallerConfig
from ..project import start_project

logger = logging.getLogger(__name__)


class StartProjectStep:
    step_id = "70_start_project"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = InstallerConfig(raw=state.get("config") or {})
        host = state.get("platform") or {}
        decisions = (state.get("execution") or {}).get("decisions") or {}
        project = state.get("project") or {}

        target = project.get("target_dir") or str(cfg.project_target_dir)
        start_project(
            target,
            mode=str(decisions.get("docker_host_mode") or "unknown"),
            os_type=str(host.get("os") or ""),
            cfg=cfg,
            docker_host=decisions.get("docker_host"),
        )
        state.setdefault("project", {})["started"] = True
        return state
