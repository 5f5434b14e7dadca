from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

VALID_MODES = ("auto", "root", "rootless")


@dataclass(frozen=True)
class InstallerConfig:
    raw: Dict[str, Any]

    @property
    def docker_version(self) -> str:
        return str(self.raw.get("docker_version") or "24.0.9")

    @property
    def slirp4netns_version(self) -> str:
        return str(self.raw.get("slirp4netns_version") or "1.2.0")

    @property
    def compose_version(self) -> str:
        return str(self.raw.get("compose_version") or "latest")

    @property
    def mode(self) -> str:
        mode = str(self.raw.get("mode") or "auto")
        if mode not in VALID_MODES:
            raise ValueError(f"config.mode must be one of {VALID_MODES}, got {mode!r}")
        return mode

    @property
    def project_root_dir(self) -> Path:
        return Path(str(self.raw.get("project_root_dir") or Path.cwd())).expanduser()

    @property
    def project_folder_name(self) -> str:
        return str(self.raw.get("project_folder_name") or "lumigator_code")

    @property
    def project_target_dir(self) -> Path:
        return self.project_root_dir / self.project_folder_name

    @property
    def repo_url(self) -> str:
        return str(self.raw.get("repo_url") or "https://github.com/mozilla-ai/lumigator").rstrip("/")

    @property
    def repo_ref(self) -> str:
        if self.use_main:
            return "refs/heads/"
        return str(self.raw.get("repo_ref") or "refs/tags/v")

    @property
    def project_version(self) -> str:
        if self.use_main:
            return "main"
        return str(self.raw.get("project_version") or "0.1.0-alpha")

    @property
    def use_main(self) -> bool:
        return bool(self.raw.get("use_main", False))

    @property
    def overwrite(self) -> bool:
        return bool(self.raw.get("overwrite", False))

    @property
    def app_url(self) -> str:
        return str(self.raw.get("app_url") or "http://localhost:80")

    @property
    def verify_attempts(self) -> int:
        return int(self.raw.get("verify_attempts", 3))

    @property
    def verify_initial_delay(self) -> float:
        return float(self.raw.get("verify_initial_delay", 20))

    @property
    def verify_retry_delay(self) -> float:
        return float(self.raw.get("verify_retry_delay", 5))

    @property
    def verify_with_hello_world(self) -> bool:
        return bool(self.raw.get("verify_with_hello_world", True))

    @property
    def desktop_wait_attempts(self) -> int:
        return int(self.raw.get("desktop_wait_attempts", 90))

    @property
    def desktop_wait_delay(self) -> float:
        return float(self.raw.get("desktop_wait_delay", 2))

    @property
    def reinstall(self) -> bool:
        return bool(self.raw.get("reinstall", False))

    @property
    def assume_yes(self) -> bool:
        return bool(self.raw.get("assume_yes", False))

    @property
    def dry_run(self) -> bool:
        return bool(self.raw.get("dry_run", False))

    @property
    def open_browser(self) -> bool:
        return bool(self.raw.get("open_browser", True))

    @property
    def http_timeout_seconds(self) -> float:
        return float(self.raw.get("http_timeout_seconds", 60))


def load_config_file(path: str) -> Dict[str, Any]:
    """Read a YAML config file; keys mirror state['config']."""

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("installer config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping/object")

    return raw
