from __future__ import annotations

import pytest

from conftest import make_zip, mock_client
from lumigator_installer.errors import ProjectExistsError, ProjectStartError
from lumigator_installer.installer_config import InstallerConfig
from lumigator_installer.project import archive_url, install_project, project_env, start_project
from lumigator_installer.state_store import ensure_defaults


def _cfg(tmp_path, **overrides):
    raw = ensure_defaults({"config": {"project_root_dir": str(tmp_path), **overrides}})["config"]
    return InstallerConfig(raw=raw)


SOURCE_ZIP = make_zip(
    {
        "lumigator-0.1.0-alpha/Makefile": b"start-lumigator:\n\techo up\n",
        "lumigator-0.1.0-alpha/.env.template": b"S3_BUCKET=lumigator\n",
        "lumigator-0.1.0-alpha/README.md": b"# Lumigator\n",
    }
)


def test_archive_url_tag_and_main(tmp_path):
    assert archive_url(_cfg(tmp_path)) == (
        "https://github.com/mozilla-ai/lumigator/archive/refs/tags/v0.1.0-alpha.zip"
    )
    assert archive_url(_cfg(tmp_path, use_main=True)) == (
        "https://github.com/mozilla-ai/lumigator/archive/refs/heads/main.zip"
    )


def test_existing_dir_without_overwrite_is_left_untouched(tmp_path):
    target = tmp_path / "lumigator_code"
    target.mkdir()
    (target / "keep.txt").write_text("mine", encoding="utf-8")
    client = mock_client({"v0.1.0-alpha.zip": SOURCE_ZIP})

    with pytest.raises(ProjectExistsError, match="Use -o to overwrite"):
        install_project(_cfg(tmp_path), client=client)

    assert sorted(p.name for p in target.iterdir()) == ["keep.txt"]
    assert (target / "keep.txt").read_text(encoding="utf-8") == "mine"


def test_overwrite_replaces_directory_contents(tmp_path):
    target = tmp_path / "lumigator_code"
    target.mkdir()
    (target / "stale.txt").write_text("old", encoding="utf-8")
    client = mock_client({"v0.1.0-alpha.zip": SOURCE_ZIP})

    out = install_project(_cfg(tmp_path, overwrite=True), client=client)

    assert out == target
    assert sorted(p.name for p in target.iterdir()) == [".env.template", "Makefile", "README.md"]


def test_fresh_install_downloads_main_branch(tmp_path):
    zipped = make_zip({"lumigator-main/Makefile": b"start-lumigator:\n"})
    client = mock_client({"/archive/refs/heads/main.zip": zipped})

    target = install_project(_cfg(tmp_path, use_main=True), client=client)

    assert (target / "Makefile").is_file()


def test_dry_run_does_not_create_directory(tmp_path):
    target = install_project(_cfg(tmp_path, dry_run=True), client=mock_client({}))
    assert not target.exists()


def test_project_env():
    assert project_env("rootless", "unix:///run/user/1000/docker.sock") == {
        "DOCKER_HOST": "unix:///run/user/1000/docker.sock"
    }
    assert project_env("root", "unix:///run/user/1000/docker.sock") == {}
    assert project_env("rootless", None) == {}


def test_start_project_runs_make_with_docker_host(tmp_path, runner):
    target = tmp_path / "lumigator_code"
    target.mkdir()
    (target / "Makefile").write_text("start-lumigator:\n", encoding="utf-8")

    start_project(
        target,
        mode="rootless",
        os_type="linux",
        cfg=_cfg(tmp_path, open_browser=False),
        docker_host="unix:///tmp/docker.sock",
    )

    i = runner.index("make", "start-lumigator")
    assert runner.cwds[i] == str(target)
    assert runner.envs[i]["DOCKER_HOST"] == "unix:///tmp/docker.sock"
    assert not runner.ran("xdg-open")


def test_start_project_opens_browser(tmp_path, runner):
    target = tmp_path / "lumigator_code"
    target.mkdir()
    (target / "Makefile").write_text("start-lumigator:\n", encoding="utf-8")

    start_project(target, mode="root", os_type="macos", cfg=_cfg(tmp_path))

    assert runner.calls[-1] == ["open", "http://localhost:80"]


def test_start_project_make_failure(tmp_path, runner):
    target = tmp_path / "lumigator_code"
    target.mkdir()
    (target / "Makefile").write_text("start-lumigator:\n", encoding="utf-8")
    runner.on("make", rc=2, stderr="docker: command not found")

    with pytest.raises(ProjectStartError, match="make exited 2"):
        start_project(target, mode="root", os_type="linux", cfg=_cfg(tmp_path, open_browser=False))


def test_start_project_requires_makefile(tmp_path, runner):
    with pytest.raises(ProjectStartError, match="Makefile not found"):
        start_project(tmp_path, mode="root", os_type="linux", cfg=_cfg(tmp_path))
    assert runner.calls == []
