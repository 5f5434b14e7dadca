from __future__ import annotations

from lumigator_installer.lib.docker_status import (
    check_compose_installed,
    check_docker_installed,
    check_docker_running,
    compose_version_report,
    detect_docker_mode,
    docker_info_mentions_rootless,
    is_rootless_docker,
)


def test_docker_installed_iff_on_path(available):
    assert check_docker_installed() is False
    available.add("docker")
    assert check_docker_installed() is True


def test_docker_running_follows_docker_info_exit_code(runner):
    assert check_docker_running() is True
    runner.on("docker", "info", rc=1)
    assert check_docker_running() is False


def test_compose_installed_plugin_or_legacy(runner):
    runner.on("docker", "compose", "version", rc=1)
    runner.on("docker-compose", "version", rc=0)
    assert check_compose_installed() is True

    runner.on("docker-compose", "version", rc=1)
    assert check_compose_installed() is False

    runner.on("docker", "compose", "version", rc=0)
    assert check_compose_installed() is True


def test_compose_version_report(runner):
    runner.on("docker", "compose", "version", stdout="Docker Compose version v2.24.6\n")
    assert compose_version_report() == ("plugin", "Docker Compose version v2.24.6")

    runner.on("docker", "compose", "version", rc=1)
    runner.on("docker-compose", "version", stdout="docker-compose version 1.29.2\n")
    assert compose_version_report() == ("legacy", "docker-compose version 1.29.2")

    runner.on("docker-compose", "version", rc=127)
    assert compose_version_report() == (None, "")


def test_missing_binary_counts_as_failure(monkeypatch):
    from lumigator_installer.lib import command as command_mod

    def boom(*a, **k):
        raise FileNotFoundError("docker")

    monkeypatch.setattr(command_mod.subprocess, "run", boom)
    assert check_docker_running() is False
    assert check_compose_installed() is False


def test_detect_docker_mode(runner):
    runner.on("systemctl", "is-active", rc=0)
    assert detect_docker_mode() == "root"

    runner.on("systemctl", "is-active", rc=3)
    runner.on("systemctl", "--user", "is-active", rc=0)
    assert detect_docker_mode() == "rootless"

    runner.on("systemctl", "--user", "is-active", rc=3)
    assert detect_docker_mode() == "unknown"


def test_is_rootless_docker_from_env():
    assert is_rootless_docker(1000, {"DOCKER_HOST": "unix:///run/user/1000/docker.sock"}) is True
    assert is_rootless_docker(987654, {"DOCKER_HOST": "unix:///var/run/docker.sock"}) is False
    assert is_rootless_docker(987654, {}) is False


def test_docker_info_mentions_rootless(runner):
    runner.on("docker", "info", stdout="Security Options:\n  rootless\n")
    assert docker_info_mentions_rootless() is True
    runner.on("docker", "info", stdout="Security Options:\n  seccomp\n")
    assert docker_info_mentions_rootless() is False
