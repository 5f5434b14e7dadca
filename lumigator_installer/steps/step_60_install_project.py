from __future__ import annotations

import logging
from typing import Any, Dict

from ..installer_config import InstallerConfig
from ..project import archive_url, install_project

logger = logging.getLogger(__name__)


class InstallProjectStep:
    step_id = "60_install_project"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = InstallerConfig(raw=state.get("config") or {})

        target = install_project(cfg)
        state["project"] = {
            "target_dir": str(target),
            "archive_url": archive_url(cfg),
            "version": cfg.project_version,
        }
        return state
