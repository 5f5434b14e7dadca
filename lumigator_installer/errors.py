from __future__ import annotations

from typing import Sequence


class InstallerError(RuntimeError):
    """Base for every failure the CLI reports with exit code 1."""


class MissingPrerequisiteError(InstallerError):
    pass


class UnsupportedPlatformError(InstallerError):
    pass


class DownloadError(InstallerError):
    pass


class ExtractionError(InstallerError):
    pass


class DaemonStartError(InstallerError):
    pass


class ProjectExistsError(InstallerError):
    pass


class ProjectStartError(InstallerError):
    pass


class UninstallVerificationError(InstallerError):
    pass


class UserAbort(InstallerError):
    """The user declined a confirmation prompt."""

    def __init__(self, message: str = "Aborting.", *, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class CommandError(InstallerError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str, message: str) -> None:
        super().__init__(message)
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
