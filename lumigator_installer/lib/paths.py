from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RootlessPaths:
    home: Path
    runtime_dir: Path

    @classmethod
    def from_home(cls, home: str | Path, runtime_dir: str | Path) -> "RootlessPaths":
        return cls(home=Path(home), runtime_dir=Path(runtime_dir))

    @property
    def bin_dir(self) -> Path:
        return self.home / "bin"

    @property
    def cli_plugins_dir(self) -> Path:
        return self.home / ".docker" / "cli-plugins"

    @property
    def rootless_dir(self) -> Path:
        return self.home / ".docker-rootless"

    @property
    def data_root(self) -> Path:
        return self.home / ".local" / "share" / "docker"

    @property
    def systemd_user_dir(self) -> Path:
        return self.home / ".config" / "systemd" / "user"

    @property
    def unit_file(self) -> Path:
        return self.systemd_user_dir / "docker-rootless.service"

    @property
    def legacy_unit_file(self) -> Path:
        return self.systemd_user_dir / "docker.service"

    @property
    def bashrc(self) -> Path:
        return self.home / ".bashrc"

    @property
    def profile(self) -> Path:
        return self.home / ".profile"

    @property
    def env_file(self) -> Path:
        return self.home / ".bashrc.docker"

    @property
    def pid_file(self) -> Path:
        return self.rootless_dir / "docker.pid"

    @property
    def dockerd_log(self) -> Path:
        return self.rootless_dir / "dockerd.log"

    @property
    def docker_sock(self) -> Path:
        return self.runtime_dir / "docker.sock"

    @property
    def docker_host(self) -> str:
        return f"unix://{self.docker_sock}"

    @property
    def compose_plugin(self) -> Path:
        return self.cli_plugins_dir / "docker-compose"


def resolve_runtime_dir(env: Mapping[str, str], uid: int, home: str | Path) -> Path:
    """XDG_RUNTIME_DIR, else /run/user/<uid>; falls back to ~/run when not writable.

    The fallback is not created here; the rootless install does that.
    """

    candidate = Path(env.get("XDG_RUNTIME_DIR") or f"/run/user/{uid}")
    if candidate.is_dir() and os.access(candidate, os.W_OK):
        return candidate

    fallback = Path(home) / "run"
    logger.warning("%s not writable. Using %s", candidate, fallback)
    return fallback


def rootless_paths_for(host: Mapping[str, object], env: Mapping[str, str] | None = None) -> RootlessPaths:
    env = os.environ if env is None else env
    home = str(host.get("home") or Path.home())
    uid = int(host["uid"]) if host.get("uid") is not None else os.getuid()
    return RootlessPaths.from_home(home, resolve_runtime_dir(env, uid, home))
