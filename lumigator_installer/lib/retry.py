from __future__ import annotations

import logging
import time
from typing import Callable

from ..errors import DaemonStartError

logger = logging.getLogger(__name__)


def wait_until(
    check: Callable[[], bool],
    *,
    attempts: int,
    delay: float,
    initial_delay: float = 0,
    describe: str = "check",
) -> int:
    """Poll check() at most `attempts` times.

    Returns the 1-based attempt that succeeded. Raises DaemonStartError once
    every attempt has failed.
    """

    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    if initial_delay > 0:
        time.sleep(initial_delay)

    for attempt in range(1, attempts + 1):
        if check():
            logger.info("%s succeeded on attempt %d", describe, attempt)
            return attempt
        if attempt == attempts:
            break
        logger.info("Attempt %d failed, retrying in %ss...", attempt, delay)
        time.sleep(delay)

    raise DaemonStartError(f"{describe} failed after {attempts} attempts")
