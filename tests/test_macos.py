from __future__ import annotations

import pytest

from lumigator_installer.errors import DaemonStartError, MissingPrerequisiteError
from lumigator_installer.installer_config import InstallerConfig
from lumigator_installer.installers.macos import ensure_compose_macos, install_docker_macos
from lumigator_installer.state_store import ensure_defaults

MAC_HOST = {
    "os": "macos",
    "arch": {"machine": "arm64", "compose": "aarch64", "static": "aarch64", "slirp": "aarch64", "desktop": "arm64"},
    "uid": 501,
    "user": "alice",
}


def _cfg(**overrides):
    return InstallerConfig(raw=ensure_defaults({"config": dict(overrides)})["config"])


def test_already_running(runner, available):
    available.add("docker")
    assert install_docker_macos(_cfg(), MAC_HOST) == "already_running"
    assert not runner.ran("open")


def test_installs_with_homebrew_and_waits(runner, available, sleeps):
    available.add("brew")
    runner.on("docker", "info", rc=1)

    with pytest.raises(DaemonStartError):
        install_docker_macos(_cfg(desktop_wait_attempts=4, desktop_wait_delay=2), MAC_HOST)

    assert runner.ran("brew", "install", "--cask", "docker")
    assert runner.ran("open", "-a", "Docker")
    assert runner.count("docker", "info") == 4
    assert sleeps == [2, 2, 2]


def test_starts_existing_desktop(runner, available, sleeps):
    available.add("docker")
    runner.on("docker", "compose", "version", rc=1)
    runner.on("docker-compose", "version", rc=1)

    assert install_docker_macos(_cfg(), MAC_HOST) == "started"
    assert runner.ran("open", "-a", "Docker")
    assert not runner.ran("brew")


def test_dmg_fallback_in_dry_run(runner, available):
    assert install_docker_macos(_cfg(dry_run=True), MAC_HOST) == "installed_dmg"
    assert runner.calls == []


def test_compose_from_desktop(runner, sleeps):
    assert ensure_compose_macos(_cfg()) == "desktop"
    assert runner.calls[0] == ["open", "-g", "-a", "Docker"]
    assert sleeps == [3]


def test_compose_needs_homebrew_without_desktop(runner, available, sleeps):
    runner.on("docker", "compose", "version", rc=1)
    runner.on("docker-compose", "version", rc=1)
    with pytest.raises(MissingPrerequisiteError, match="Homebrew"):
        ensure_compose_macos(_cfg())
