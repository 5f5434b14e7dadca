from __future__ import annotations

from lumigator_installer.docker_host import configure_docker_host, rootless_env_hint


def test_rootless_sets_env_and_persists_once(rootless_paths):
    env = {}

    value = configure_docker_host("rootless", rootless_paths, env)
    configure_docker_host("rootless", rootless_paths, env)

    assert value == rootless_paths.docker_host
    assert env["DOCKER_HOST"] == rootless_paths.docker_host
    text = rootless_paths.bashrc.read_text(encoding="utf-8")
    assert text.count("DOCKER_HOST=") == 1
    assert f"export DOCKER_HOST={rootless_paths.docker_host}" in text


def test_rootless_skips_bashrc_when_env_file_is_sourced(rootless_paths):
    rootless_paths.env_file.write_text(f"export DOCKER_HOST={rootless_paths.docker_host}\n", encoding="utf-8")
    rootless_paths.bashrc.write_text(f". {rootless_paths.env_file}\n", encoding="utf-8")

    configure_docker_host("rootless", rootless_paths, {})

    assert rootless_paths.bashrc.read_text(encoding="utf-8") == f". {rootless_paths.env_file}\n"


def test_root_clears_env_and_bashrc(rootless_paths):
    rootless_paths.bashrc.write_text(
        "alias ll='ls -l'\nexport DOCKER_HOST=unix:///run/user/1000/docker.sock\n", encoding="utf-8"
    )
    env = {"DOCKER_HOST": "unix:///run/user/1000/docker.sock"}

    assert configure_docker_host("root", rootless_paths, env) is None

    assert "DOCKER_HOST" not in env
    assert rootless_paths.bashrc.read_text(encoding="utf-8") == "alias ll='ls -l'\n"


def test_unknown_mode_leaves_env_alone(rootless_paths):
    env = {"DOCKER_HOST": "tcp://remote:2375"}
    assert configure_docker_host("unknown", rootless_paths, env) == "tcp://remote:2375"
    assert not rootless_paths.bashrc.exists()


def test_hint_mentions_export():
    assert "export DOCKER_HOST=unix:///x.sock" in rootless_env_hint("unix:///x.sock")
