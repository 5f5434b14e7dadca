"""HTTP downloads and release lookups.

All network access goes through one httpx client builder so timeouts,
redirects and headers behave the same for every URL we fetch.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional

import httpx

from ..errors import DownloadError

logger = logging.getLogger(__name__)

USER_AGENT = "lumigator-installer/0.1"

DOCKER_STATIC_BASE = "https://download.docker.com/linux/static/stable"
COMPOSE_LATEST_API = "https://api.github.com/repos/docker/compose/releases/latest"
COMPOSE_RELEASE_BASE = "https://github.com/docker/compose/releases/download"
SLIRP4NETNS_RELEASE_BASE = "https://github.com/rootless-containers/slirp4netns/releases/download"
DESKTOP_DMG_BASE = "https://desktop.docker.com/mac/main"
DOCKER_APT_BASE = "https://download.docker.com/linux"

_DOCKER_TGZ_RE = re.compile(r"docker-(\d+)\.(\d+)\.(\d+)\.tgz")


def build_client(timeout: float = 60.0) -> httpx.Client:
    return httpx.Client(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def _get(client: httpx.Client, url: str) -> httpx.Response:
    try:
        response = client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise DownloadError(f"Failed to download {url}: HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise DownloadError(f"Failed to download {url}: {e}") from e
    return response


def fetch_text(url: str, client: Optional[httpx.Client] = None) -> str:
    if client is None:
        with build_client() as own:
            return _get(own, url).text
    return _get(client, url).text


def fetch_json(url: str, client: Optional[httpx.Client] = None) -> Any:
    if client is None:
        with build_client() as own:
            return _get(own, url).json()
    return _get(client, url).json()


def download_file(url: str, dest: str | Path, client: Optional[httpx.Client] = None) -> Path:
    """Stream url into dest. dest only appears once the body is complete."""

    if client is None:
        with build_client() as own:
            return download_file(url, dest, own)

    out = Path(dest)
    out.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading %s -> %s", url, out)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{out.name}.", dir=str(out.parent))
    try:
        with os.fdopen(fd, "wb") as fh:
            with client.stream("GET", url) as response:
                if response.status_code >= 400:
                    raise DownloadError(f"Failed to download {url}: HTTP {response.status_code}")
                for chunk in response.iter_bytes():
                    fh.write(chunk)
        os.replace(tmp_name, out)
    except httpx.HTTPError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise DownloadError(f"Failed to download {url}: {e}") from e
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return out


def latest_docker_version(client: Optional[httpx.Client] = None, static_arch: str = "x86_64") -> str:
    index = fetch_text(f"{DOCKER_STATIC_BASE}/{static_arch}/", client)
    versions = {tuple(int(x) for x in m.groups()) for m in _DOCKER_TGZ_RE.finditer(index)}
    if not versions:
        raise DownloadError(
            "Failed to fetch latest Docker version. "
            "Check network connectivity or Docker download page availability."
        )
    latest = ".".join(str(x) for x in max(versions))
    logger.info("Latest Docker version detected: %s", latest)
    return latest


def latest_compose_version(client: Optional[httpx.Client] = None) -> str:
    data = fetch_json(COMPOSE_LATEST_API, client)
    tag = data.get("tag_name") if isinstance(data, dict) else None
    if not tag:
        raise DownloadError("Failed to fetch latest Docker Compose version.")
    logger.info("Latest Docker Compose version detected: %s", tag)
    return str(tag)


def docker_static_url(version: str, static_arch: str) -> str:
    return f"{DOCKER_STATIC_BASE}/{static_arch}/docker-{version}.tgz"


def rootless_extras_url(version: str, static_arch: str) -> str:
    return f"{DOCKER_STATIC_BASE}/{static_arch}/docker-rootless-extras-{version}.tgz"


def slirp4netns_url(version: str, slirp_arch: str) -> str:
    return f"{SLIRP4NETNS_RELEASE_BASE}/v{version.lstrip('v')}/slirp4netns-{slirp_arch}"


def compose_url(version: str, os_name: str, compose_arch: str) -> str:
    if version == "latest":
        return f"https://github.com/docker/compose/releases/latest/download/docker-compose-{os_name}-{compose_arch}"
    tag = version if version.startswith("v") else f"v{version}"
    return f"{COMPOSE_RELEASE_BASE}/{tag}/docker-compose-{os_name}-{compose_arch}"


def desktop_dmg_url(desktop_arch: str) -> str:
    return f"{DESKTOP_DMG_BASE}/{desktop_arch}/Docker.dmg"


def docker_apt_gpg_url(distro: str) -> str:
    return f"{DOCKER_APT_BASE}/{distro}/gpg"


def docker_apt_repo_url(distro: str) -> str:
    return f"{DOCKER_APT_BASE}/{distro}"
