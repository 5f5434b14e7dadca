from __future__ import annotations

import io
import os
import tarfile
import zipfile

import pytest

from conftest import make_tgz, make_zip
from lumigator_installer.errors import ExtractionError
from lumigator_installer.lib.archives import extract_tar, extract_zip_single_root


def _write(tmp_path, name, data):
    p = tmp_path / name
    p.write_bytes(data)
    return p


def test_extract_tar_strips_leading_directory(tmp_path):
    archive = _write(
        tmp_path,
        "docker.tgz",
        make_tgz({"docker/docker": b"cli", "docker/dockerd": b"daemon"}, dirs=["docker"]),
    )
    out = tmp_path / "bin"

    written = extract_tar(archive, out, strip_components=1)

    assert sorted(p.name for p in written) == ["docker", "dockerd"]
    assert (out / "docker").read_bytes() == b"cli"
    assert os.access(out / "dockerd", os.X_OK)
    assert not (out / "docker" / "docker").exists()


def test_extract_tar_selected_members(tmp_path):
    archive = _write(
        tmp_path,
        "extras.tgz",
        make_tgz(
            {
                "docker-rootless-extras/dockerd-rootless.sh": b"#!/bin/sh\n",
                "docker-rootless-extras/rootlesskit": b"kit",
                "docker-rootless-extras/vpnkit": b"vpn",
            }
        ),
    )
    out = tmp_path / "bin"

    extract_tar(
        archive,
        out,
        strip_components=1,
        members=["docker-rootless-extras/dockerd-rootless.sh", "docker-rootless-extras/rootlesskit"],
    )

    assert sorted(p.name for p in out.iterdir()) == ["dockerd-rootless.sh", "rootlesskit"]


def test_extract_tar_missing_member_raises(tmp_path):
    archive = _write(tmp_path, "a.tgz", make_tgz({"docker/docker": b"cli"}))
    with pytest.raises(ExtractionError, match="docker/runc"):
        extract_tar(archive, tmp_path / "out", strip_components=1, members=["docker/runc"])


def test_extract_tar_refuses_path_traversal(tmp_path):
    archive = _write(tmp_path, "evil.tgz", make_tgz({"docker/../../evil": b"x"}))
    with pytest.raises(ExtractionError, match="unsafe"):
        extract_tar(archive, tmp_path / "out", strip_components=1)
    assert not (tmp_path / "evil").exists()


def test_extract_tar_corrupt_archive(tmp_path):
    archive = _write(tmp_path, "broken.tgz", b"not a tarball")
    with pytest.raises(ExtractionError):
        extract_tar(archive, tmp_path / "out")


def test_extract_tar_keeps_existing_when_not_overwriting(tmp_path):
    archive = _write(tmp_path, "a.tgz", make_tgz({"docker/docker": b"new"}))
    out = tmp_path / "out"
    out.mkdir()
    (out / "docker").write_bytes(b"old")

    assert extract_tar(archive, out, strip_components=1, overwrite=False) == []
    assert (out / "docker").read_bytes() == b"old"


def test_extract_tar_skips_symlinks(tmp_path):
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        link = tarfile.TarInfo("docker/link")
        link.type = tarfile.SYMTYPE
        link.linkname = "/etc/passwd"
        tf.addfile(link)
    archive = _write(tmp_path, "links.tgz", buf.getvalue())

    assert extract_tar(archive, tmp_path / "out", strip_components=1) == []
    assert not (tmp_path / "out" / "link").exists()


def test_extract_zip_moves_single_root_including_hidden_files(tmp_path):
    archive = _write(
        tmp_path,
        "src.zip",
        make_zip(
            {
                "lumigator-main/Makefile": b"start-lumigator:\n",
                "lumigator-main/.env.template": b"A=1\n",
                "lumigator-main/lumigator/app.py": b"",
            }
        ),
    )
    dest = tmp_path / "lumigator_code"

    root = extract_zip_single_root(archive, dest)

    assert root == "lumigator-main"
    assert (dest / "Makefile").is_file()
    assert (dest / ".env.template").read_text() == "A=1\n"
    assert (dest / "lumigator" / "app.py").is_file()
    assert not (dest / "lumigator-main").exists()


def test_extract_zip_rejects_multiple_roots(tmp_path):
    archive = _write(tmp_path, "two.zip", make_zip({"a/x": b"", "b/y": b""}))
    with pytest.raises(ExtractionError, match="single top-level"):
        extract_zip_single_root(archive, tmp_path / "dest")


def test_extract_zip_bad_file(tmp_path):
    archive = _write(tmp_path, "bad.zip", b"garbage")
    with pytest.raises(ExtractionError):
        extract_zip_single_root(archive, tmp_path / "dest")


def test_extract_zip_keeps_executable_bit(tmp_path):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        script = zipfile.ZipInfo("lumigator-main/scripts/setup.sh")
        script.external_attr = 0o100755 << 16
        zf.writestr(script, b"#!/bin/sh\n")
        plain = zipfile.ZipInfo("lumigator-main/README.md")
        plain.external_attr = 0o100644 << 16
        zf.writestr(plain, b"docs\n")
    archive = _write(tmp_path, "src.zip", buf.getvalue())
    dest = tmp_path / "lumigator_code"

    extract_zip_single_root(archive, dest)

    assert os.access(dest / "scripts" / "setup.sh", os.X_OK)
    assert (dest / "README.md").stat().st_mode & 0o777 == 0o644
