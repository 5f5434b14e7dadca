from __future__ import annotations

import getpass
import logging
import os
import platform
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import UnsupportedPlatformError

logger = logging.getLogger(__name__)

SUPPORTED_DISTROS = ("debian", "ubuntu")


@dataclass(frozen=True)
class HostArch:
    machine: str
    # docker/compose release asset suffix (docker-compose-linux-<compose>)
    compose: str
    # download.docker.com/linux/static/stable/<static>/
    static: str
    # slirp4netns-<slirp>
    slirp: str
    # Docker Desktop DMG flavour
    desktop: str


_ARCH_MAP = {
    "x86_64": HostArch("x86_64", compose="x86_64", static="x86_64", slirp="x86_64", desktop="amd64"),
    "amd64": HostArch("x86_64", compose="x86_64", static="x86_64", slirp="x86_64", desktop="amd64"),
    "aarch64": HostArch("aarch64", compose="aarch64", static="aarch64", slirp="aarch64", desktop="arm64"),
    "arm64": HostArch("arm64", compose="aarch64", static="aarch64", slirp="aarch64", desktop="arm64"),
    "armv7l": HostArch("armv7l", compose="armv7", static="armhf", slirp="armv7l", desktop="amd64"),
}


def detect_os(system: Optional[str] = None) -> str:
    name = system if system is not None else platform.system()
    lowered = name.lower()
    if lowered.startswith("linux"):
        return "linux"
    if lowered.startswith("darwin"):
        return "macos"
    raise UnsupportedPlatformError(f"Unsupported OS: {name}")


def detect_arch(machine: Optional[str] = None) -> HostArch:
    m = machine if machine is not None else platform.machine()
    arch = _ARCH_MAP.get(m.lower())
    if arch is None:
        raise UnsupportedPlatformError(
            f"Unsupported architecture: {m}. Supported: x86_64, aarch64, arm64, armv7l"
        )
    return arch


def read_os_release(path: str = "/etc/os-release") -> Dict[str, str]:
    """Parse KEY=VALUE lines; missing file yields an empty dict."""

    p = Path(path)
    if not p.exists():
        return {}

    data: Dict[str, str] = {}
    for line in p.read_text(encoding="utf-8", errors="ignore").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        data[key.strip()] = value.strip().strip('"').strip("'")
    return data


def detect_distro(os_release: Dict[str, str]) -> str:
    distro_id = (os_release.get("ID") or "").lower()
    if distro_id in SUPPORTED_DISTROS:
        return distro_id
    return "unsupported"


def distro_codename(os_release: Dict[str, str]) -> Optional[str]:
    return os_release.get("VERSION_CODENAME") or os_release.get("UBUNTU_CODENAME") or None


def current_user() -> str:
    return os.environ.get("USER") or getpass.getuser()


def detect_host(
    *,
    system: Optional[str] = None,
    machine: Optional[str] = None,
    os_release_path: str = "/etc/os-release",
) -> Dict[str, Any]:
    """Collect the host facts every later step branches on."""

    os_type = detect_os(system)
    arch = detect_arch(machine)

    host: Dict[str, Any] = {
        "os": os_type,
        "arch": asdict(arch),
        "uid": os.getuid(),
        "user": current_user(),
        "home": str(Path.home()),
        "distro": None,
        "codename": None,
    }

    if os_type == "linux":
        rel = read_os_release(os_release_path)
        host["distro"] = detect_distro(rel)
        host["codename"] = distro_codename(rel)

    logger.info(
        "Detected OS: %s, Architecture: %s, Distro: %s",
        host["os"],
        arch.machine,
        host["distro"] or "n/a",
    )
    return host


def host_arch(host: Dict[str, Any]) -> HostArch:
    return HostArch(**host["arch"])
