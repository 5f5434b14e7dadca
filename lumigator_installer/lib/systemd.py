from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .command import CmdResult, command_exists, run_cmd, succeeds, sudo_argv
from .paths import RootlessPaths

logger = logging.getLogger(__name__)

ROOTLESS_UNIT = "docker-rootless.service"


def render_rootless_unit(paths: RootlessPaths, *, extra_path: str = "", log_level: str = "debug") -> str:
    bin_dir = paths.bin_dir
    search_path = f"{bin_dir}:{extra_path}" if extra_path else str(bin_dir)
    exec_start = " ".join(
        [
            f"{bin_dir}/dockerd-rootless.sh",
            f"--data-root {paths.data_root}",
            f"--pidfile {paths.pid_file}",
            f"--log-level {log_level}",
            "--userland-proxy=true",
            f"--userland-proxy-path={bin_dir}/slirp4netns",
            "--exec-opt native.cgroupdriver=cgroupfs",
        ]
    )
    return "\n".join(
        [
            "[Unit]",
            "Description=Docker Rootless Daemon",
            "After=network.target",
            "",
            "[Service]",
            f"ExecStart={exec_start}",
            "Restart=always",
            f'Environment="PATH={search_path}"',
            f'Environment="DOCKER_HOST={paths.docker_host}"',
            "",
            "[Install]",
            "WantedBy=default.target",
            "",
        ]
    )


def write_unit(path: str | Path, text: str, *, dry_run: bool = False) -> None:
    p = Path(path)
    if dry_run:
        logger.info("Would write unit %s", p)
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    logger.info("Wrote unit %s", p)


def systemctl(
    args: Sequence[str],
    *,
    user: bool,
    check: bool = True,
    dry_run: bool = False,
) -> CmdResult:
    if user:
        return run_cmd(["systemctl", "--user", *args], check=check, dry_run=dry_run)
    return run_cmd(sudo_argv(["systemctl", *args]), check=check, dry_run=dry_run)


def is_active(unit: str, *, user: bool) -> bool:
    argv = ["systemctl"]
    if user:
        argv.append("--user")
    return succeeds([*argv, "is-active", "--quiet", unit])


def user_systemd_available() -> bool:
    return command_exists("systemctl") and succeeds(["systemctl", "--user", "show-environment"])
