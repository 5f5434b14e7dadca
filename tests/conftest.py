"""Shared fixtures. Nothing here touches the real system: commands, PATH lookups,
sleeps and HTTP are all faked."""

from __future__ import annotations

import io
import os
import shutil
import subprocess
import tarfile
import time
import zipfile
from dataclasses import asdict
from typing import Dict, List, Optional, Set

import httpx
import pytest

from lumigator_installer.lib import command as command_mod
from lumigator_installer.lib.hostinfo import detect_arch
from lumigator_installer.lib.paths import RootlessPaths


class FakeRunner:
    """Stands in for subprocess.run. Rules match on argv prefix; the newest rule wins."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.envs: List[Dict[str, str]] = []
        self.cwds: List[Optional[str]] = []
        self.inputs: List[Optional[str]] = []
        self.rules: List[tuple] = []

    def on(self, *prefix: str, rc: int = 0, stdout: str = "", stderr: str = "") -> "FakeRunner":
        self.rules.insert(0, (tuple(prefix), rc, stdout, stderr))
        return self

    def __call__(self, argv, input=None, text=True, stdout=None, stderr=None, cwd=None, env=None):
        argv = list(argv)
        self.calls.append(argv)
        self.envs.append(dict(env or {}))
        self.cwds.append(cwd)
        self.inputs.append(input)
        for prefix, rc, out, err in self.rules:
            if tuple(argv[: len(prefix)]) == prefix:
                return subprocess.CompletedProcess(argv, rc, out, err)
        return subprocess.CompletedProcess(argv, 0, "", "")

    def ran(self, *prefix: str) -> bool:
        return self.count(*prefix) > 0

    def count(self, *prefix: str) -> int:
        return sum(1 for c in self.calls if tuple(c[: len(prefix)]) == prefix)

    def index(self, *prefix: str) -> int:
        for i, c in enumerate(self.calls):
            if tuple(c[: len(prefix)]) == prefix:
                return i
        raise AssertionError(f"{prefix} never ran; calls={self.calls}")


class FakePopen:
    spawned: List[List[str]] = []

    def __init__(self, argv, **kwargs) -> None:
        FakePopen.spawned.append(list(argv))
        self.pid = 4242


@pytest.fixture
def runner(monkeypatch) -> FakeRunner:
    r = FakeRunner()
    monkeypatch.setattr(command_mod.subprocess, "run", r)
    FakePopen.spawned = []
    monkeypatch.setattr(command_mod.subprocess, "Popen", FakePopen)
    return r


@pytest.fixture
def available(monkeypatch) -> Set[str]:
    """Names that shutil.which resolves. Tests add to the returned set."""

    names: Set[str] = set()
    monkeypatch.setattr(shutil, "which", lambda name, *a, **k: f"/usr/bin/{name}" if name in names else None)
    return names


@pytest.fixture
def sleeps(monkeypatch) -> List[float]:
    recorded: List[float] = []
    monkeypatch.setattr(time, "sleep", recorded.append)
    return recorded


@pytest.fixture
def non_root(monkeypatch) -> None:
    monkeypatch.setattr(os, "geteuid", lambda: 1000)


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.setenv("PATH", "/usr/bin:/bin")
    monkeypatch.delenv("DOCKER_HOST", raising=False)
    monkeypatch.delenv("XDG_RUNTIME_DIR", raising=False)
    return tmp_path


@pytest.fixture
def rootless_paths(tmp_path) -> RootlessPaths:
    home = tmp_path / "home"
    run = tmp_path / "run"
    home.mkdir()
    run.mkdir()
    return RootlessPaths.from_home(home, run)


@pytest.fixture
def linux_host(rootless_paths) -> Dict[str, object]:
    return {
        "os": "linux",
        "arch": asdict(detect_arch("x86_64")),
        "uid": 1000,
        "user": "alice",
        "home": str(rootless_paths.home),
        "distro": "ubuntu",
        "codename": "noble",
    }


def make_tgz(files: Dict[str, bytes], *, dirs: Optional[List[str]] = None) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for d in dirs or []:
            info = tarfile.TarInfo(d)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tf.addfile(info)
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def make_zip(files: Dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buf.getvalue()


def mock_client(routes: Dict[str, bytes], *, status: int = 200) -> httpx.Client:
    """httpx client answering by URL suffix; unknown URLs get 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        for suffix, body in routes.items():
            if url.endswith(suffix):
                return httpx.Response(status, content=body)
        return httpx.Response(404, content=b"not found")

    return httpx.Client(transport=httpx.MockTransport(handler))
