from .step_10_detect_platform import DetectPlatformStep
from .step_20_check_prerequisites import CheckPrerequisitesStep
from .step_30_install_docker import InstallDockerStep
from .step_40_ensure_compose import EnsureComposeStep
from .step_50_configure_docker_host import ConfigureDockerHostStep
from .step_60_install_project import InstallProjectStep
from .step_70_start_project import StartProjectStep

__all__ = [
    "DetectPlatformStep",
    "CheckPrerequisitesStep",
    "InstallDockerStep",
    "EnsureComposeStep",
    "ConfigureDockerHostStep",
    "InstallProjectStep",
    "StartProjectStep",
]
