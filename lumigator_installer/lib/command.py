from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)

# Exit status a shell reports for "command not found".
NOT_FOUND = 127


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_argv(argv: Sequence[str]) -> str:
    return shlex.join(argv)


def _merged_env(env: Mapping[str, str] | None) -> dict[str, str]:
    merged = dict(os.environ)
    merged.update(env or {})
    return merged


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run argv, logging it first. env is layered over os.environ.

    With dry_run the command is only logged. A missing executable is reported
    as exit status 127, like a shell would.
    """

    cmd = list(argv)
    logger.info("CMD %s", format_argv(cmd))
    if dry_run:
        return CmdResult(argv=cmd, returncode=0, stdout="", stderr="")

    try:
        proc = subprocess.run(
            cmd,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=_merged_env(env),
        )
    except FileNotFoundError as e:
        if check:
            raise CommandError(cmd, NOT_FOUND, str(e), f"Command not found: {cmd[0]}") from e
        return CmdResult(argv=cmd, returncode=NOT_FOUND, stdout="", stderr=str(e))

    result = CmdResult(argv=cmd, returncode=proc.returncode, stdout=proc.stdout or "", stderr=proc.stderr or "")
    for stream, text in (("STDOUT", result.stdout), ("STDERR", result.stderr)):
        if text.strip():
            logger.debug("%s %s", stream, text.strip())

    if check and not result.ok:
        raise CommandError(
            cmd,
            result.returncode,
            result.stderr,
            f"Command failed ({result.returncode}): {format_argv(cmd)}\n{result.stderr}",
        )
    return result


def command_exists(name: str) -> bool:
    return shutil.which(name) is not None


def succeeds(argv: Sequence[str], *, env: Mapping[str, str] | None = None) -> bool:
    return run_cmd(argv, check=False, env=env).ok


def is_root() -> bool:
    return os.geteuid() == 0


def sudo_argv(argv: Sequence[str]) -> list[str]:
    return list(argv) if is_root() else ["sudo", *argv]


def spawn_background(
    argv: Sequence[str],
    *,
    log_path: str,
    env: Mapping[str, str] | None = None,
    dry_run: bool = False,
) -> Optional[int]:
    """nohup argv > log_path 2>&1 &, detached from our session. Returns the pid."""

    cmd = list(argv)
    logger.info("SPAWN %s > %s", format_argv(cmd), log_path)
    if dry_run:
        return None

    log_file = Path(log_path)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with log_file.open("ab") as out:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=out,
            stderr=subprocess.STDOUT,
            env=_merged_env(env),
            start_new_session=True,
        )
    return proc.pid
