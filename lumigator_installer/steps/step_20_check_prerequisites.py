from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import MissingPrerequisiteError
from ..installer_config import InstallerConfig
from ..lib.command import command_exists
from ..project import check_target_dir

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("make",)


class CheckPrerequisitesStep:
    step_id = "20_check_prerequisites"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = InstallerConfig(raw=state.get("config") or {})

        for tool in REQUIRED_TOOLS:
            if not command_exists(tool):
                raise MissingPrerequisiteError(f"{tool} is required.")

        # Fail on a directory conflict before Docker gets installed, not after.
        target = check_target_dir(cfg)
        logger.info("Prerequisites OK; Lumigator target directory: %s", target)
        return state
