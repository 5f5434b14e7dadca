from __future__ import annotations

import logging
from pathlib import Path

DEFAULT_LOG_PATH = str(Path.home() / ".local/state/lumigator-installer/installer.log")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
CONSOLE_FORMAT = "%(message)s"

_CONFIGURED_ATTR = "_lumigator_log_path"


def _file_handler(log_path: str) -> tuple[logging.Handler, str]:
    """Open log_path, or ./lumigator-installer.log when that location is not writable."""

    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        fallback = str(Path.cwd() / "lumigator-installer.log")
        return logging.FileHandler(fallback), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    *,
    quiet: bool = False,
    level: int = logging.INFO,
) -> str:
    """Send every command and decision to the log file.

    The console mirrors the log unless quiet is set, in which case it only
    shows warnings and errors. Calling this again is a no-op that returns the
    file chosen the first time.
    """

    root = logging.getLogger()
    existing = getattr(root, _CONFIGURED_ATTR, None)
    if existing:
        return existing

    root.setLevel(level)

    file_handler, chosen = _file_handler(log_path)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    root.addHandler(file_handler)

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    console.setLevel(logging.WARNING if quiet else level)
    root.addHandler(console)

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    setattr(root, _CONFIGURED_ATTR, chosen)
    if chosen != log_path:
        logging.getLogger(__name__).warning("Cannot write %s; logging to %s instead", log_path, chosen)
    return chosen
