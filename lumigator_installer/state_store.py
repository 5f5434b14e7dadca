from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = str(Path.home() / ".local/state/lumigator-installer/state.json")

STATE_VERSION = "1"

DEFAULT_CONFIG: Dict[str, Any] = {
    # Versions. compose_version may be "latest" (GitHub API lookup) or a pinned tag.
    "docker_version": "24.0.9",
    "slirp4netns_version": "1.2.0",
    "compose_version": "latest",
    # auto: ask on Linux; the prompt's default answer is root-based.
    "mode": "auto",
    # Lumigator source.
    "project_root_dir": None,
    "project_folder_name": "lumigator_code",
    "repo_url": "https://github.com/mozilla-ai/lumigator",
    "repo_ref": "refs/tags/v",
    "project_version": "0.1.0-alpha",
    "use_main": False,
    "overwrite": False,
    "app_url": "http://localhost:80",
    # Daemon verification is fixed-count polling.
    "verify_attempts": 3,
    "verify_initial_delay": 20,
    "verify_retry_delay": 5,
    "verify_with_hello_world": True,
    "desktop_wait_attempts": 90,
    "desktop_wait_delay": 2,
    "assume_yes": False,
    "reinstall": False,
    "dry_run": False,
    "open_browser": True,
    "http_timeout_seconds": 60,
}


def _is_yaml(path: Path) -> bool:
    # Anything that is not .yaml/.yml is treated as JSON.
    return path.suffix.lower() in {".yaml", ".yml"}


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    text = p.read_text(encoding="utf-8")
    data = (yaml.safe_load(text) or {}) if _is_yaml(p) else json.loads(text)

    if not isinstance(data, dict):
        raise ValueError(f"State file {path} must hold a mapping, got {type(data).__name__}")
    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    """Write state next to its final location, then rename over it."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _is_yaml(p):
        text = yaml.safe_dump(state, sort_keys=False)
    else:
        text = json.dumps(state, indent=2, sort_keys=True, default=str) + "\n"

    fd, tmp_name = tempfile.mkstemp(prefix=f".{p.name}.", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, p)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug("Saved installer state to %s", p)


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill in missing keys; values already present are never overridden."""

    state.setdefault("version", STATE_VERSION)
    for section in ("config", "platform", "execution"):
        state.setdefault(section, {})

    cfg = state["config"]
    for key, value in DEFAULT_CONFIG.items():
        cfg.setdefault(key, value)
    if cfg["project_root_dir"] is None:
        cfg["project_root_dir"] = str(Path.cwd())

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("errors", [])
    exe.setdefault("decisions", {})

    return state


def record_decision(state: Dict[str, Any], key: str, value: Any) -> None:
    state.setdefault("execution", {}).setdefault("decisions", {})[key] = value


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    completed = state.setdefault("execution", {}).setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    return step_id in ((state.get("execution") or {}).get("completed_steps") or [])
