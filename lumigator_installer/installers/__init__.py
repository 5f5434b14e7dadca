"""Per-platform Docker installers (macOS Desktop, Linux root apt, Linux rootless)."""

from .linux_root import ensure_compose_linux_root, ensure_docker_running_linux, install_docker_linux_root
from .linux_rootless import ensure_compose_linux_rootless, install_docker_linux_rootless
from .macos import ensure_compose_macos, install_docker_macos

__all__ = [
    "ensure_compose_linux_root",
    "ensure_compose_linux_rootless",
    "ensure_compose_macos",
    "ensure_docker_running_linux",
    "install_docker_linux_root",
    "install_docker_linux_rootless",
    "install_docker_macos",
]
