from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.hostinfo import detect_host

logger = logging.getLogger(__name__)


class DetectPlatformStep:
    step_id = "10_detect_platform"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        # Raises UnsupportedPlatformError for anything but Linux/macOS on a known arch.
        state["platform"] = detect_host()
        return state
