from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .errors import InstallerError, UnsupportedPlatformError, UserAbort
from .installer_config import InstallerConfig, load_config_file
from .lib.hostinfo import detect_host
from .lib.paths import rootless_paths_for
from .lib.prompt import ask
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import Step, run_pipeline
from .state_store import DEFAULT_STATE_PATH, ensure_defaults, load_state, save_state
from .steps import (
    CheckPrerequisitesStep,
    ConfigureDockerHostStep,
    DetectPlatformStep,
    EnsureComposeStep,
    InstallDockerStep,
    InstallProjectStep,
    StartProjectStep,
)
from .uninstall import uninstall

logger = logging.getLogger(__name__)

BANNER = "\n".join(
    [
        "*" * 89,
        " STARTING LUMIGATOR BY MOZILLA.AI ".center(89, "*"),
        "*" * 89,
    ]
)


def build_setup_steps() -> List[Step]:
    return [
        DetectPlatformStep(),
        CheckPrerequisitesStep(),
        InstallDockerStep(),
        EnsureComposeStep(),
        ConfigureDockerHostStep(),
        InstallProjectStep(),
        StartProjectStep(),
    ]


def build_install_docker_steps() -> List[Step]:
    return [DetectPlatformStep(), InstallDockerStep(), ConfigureDockerHostStep()]


def build_ensure_compose_steps() -> List[Step]:
    return [DetectPlatformStep(), EnsureComposeStep(), ConfigureDockerHostStep()]


def build_fix_rootless_steps() -> List[Step]:
    # Clean rootless reinstall, then restart the already-downloaded project.
    return [DetectPlatformStep(), InstallDockerStep(), ConfigureDockerHostStep(), StartProjectStep()]


def run(
    *,
    steps: List[Step],
    config: Optional[Dict[str, Any]] = None,
    state_path: str = DEFAULT_STATE_PATH,
    resume: bool = False,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    confirm: Optional[Callable[[InstallerConfig], None]] = None,
) -> Dict[str, Any]:
    """Run an installer pipeline, persisting state for resume."""

    state = load_state(state_path) if resume else {}
    state.setdefault("config", {}).update(config or {})
    state = ensure_defaults(state)

    if confirm is not None:
        confirm(InstallerConfig(raw=state["config"]))

    try:
        result = run_pipeline(state=state, steps=steps, start_at=start_at, stop_after=stop_after, force=force)
    except Exception as e:
        execution = state.setdefault("execution", {})
        execution.setdefault("errors", []).append(
            {"step": execution.get("current_step"), "type": type(e).__name__, "error": str(e)}
        )
        save_state(state_path, state)
        raise

    state = result.state
    state["execution"]["summary"] = {"ran_steps": result.ran_steps, "skipped_steps": result.skipped_steps}
    save_state(state_path, state)
    return state


def confirm_setup(cfg: InstallerConfig) -> None:
    question = (
        "This script will install the latest Docker and Docker Compose, then set up Lumigator. "
        "Proceed? (yes/no):"
    )
    if not ask(question, accept=("yes",), assume_yes=cfg.assume_yes):
        raise UserAbort("Aborting installation.", exit_code=0)


def _mode_from_args(args: argparse.Namespace) -> Optional[str]:
    if getattr(args, "rootless", False):
        return "rootless"
    if getattr(args, "root", False):
        return "root"
    return None


def config_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Config file values, overridden by whatever flags were given."""

    cfg: Dict[str, Any] = load_config_file(args.config) if args.config else {}

    if args.yes:
        cfg["assume_yes"] = True
    if args.dry_run:
        cfg["dry_run"] = True

    mode = _mode_from_args(args)
    if mode:
        cfg["mode"] = mode
    if getattr(args, "directory", None):
        cfg["project_root_dir"] = args.directory
    if getattr(args, "overwrite", False):
        cfg["overwrite"] = True
    if getattr(args, "main", False):
        cfg["use_main"] = True
    if getattr(args, "no_browser", False):
        cfg["open_browser"] = False
    return cfg


def _add_mode_flags(p: argparse.ArgumentParser) -> None:
    g = p.add_mutually_exclusive_group()
    g.add_argument("-r", "--rootless", action="store_true", help="Use rootless Docker (no sudo)")
    g.add_argument("--root", action="store_true", help="Use system-wide (root-based) Docker")


def _add_pipeline_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("--resume", action="store_true", help="Resume from the saved state, skipping completed steps")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 30_install_docker)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")


def _common_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(add_help=False)
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to installer state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--config", default=None, help="YAML config file (keys as in state.config)")
    p.add_argument("-q", "--quiet", action="store_true", help="Only print warnings and errors")
    p.add_argument("-y", "--yes", action="store_true", help="Answer yes to every prompt")
    p.add_argument("--dry-run", action="store_true", help="Log commands without executing them")
    return p


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lumigator-installer",
        description="Sets up Lumigator by checking your environment and installing Docker and Compose as needed.",
    )
    common = _common_parser()

    sub = p.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    setup = sub.add_parser("setup", parents=[common], help="Install Docker/Compose if needed, then download and start Lumigator")
    setup.add_argument(
        "-d",
        "--directory",
        default=None,
        help="Directory for installing the code (default: current directory)",
    )
    setup.add_argument("-o", "--overwrite", action="store_true", help="Overwrite existing directory (lumigator_code)")
    setup.add_argument("-m", "--main", action="store_true", help="Use GitHub main branch of Lumigator (default is MVP tag)")
    setup.add_argument("--no-browser", action="store_true", help="Do not open the UI in a browser")
    _add_mode_flags(setup)
    _add_pipeline_flags(setup)

    install = sub.add_parser("install-docker", parents=[common], help="Install and start Docker (and Compose) only")
    _add_mode_flags(install)
    _add_pipeline_flags(install)

    compose = sub.add_parser("ensure-compose", parents=[common], help="Make sure Docker Compose is available")
    _add_mode_flags(compose)
    _add_pipeline_flags(compose)

    fix = sub.add_parser("fix-rootless", parents=[common], help="Reinstall rootless Docker from scratch and restart Lumigator")
    fix.add_argument("-d", "--directory", default=None, help="Directory holding lumigator_code (default: $HOME)")
    fix.add_argument("--no-browser", action="store_true", help="Do not open the UI in a browser")

    rm = sub.add_parser("uninstall", parents=[common], help="Remove Docker and Docker Compose")
    rm.add_argument(
        "--mode",
        choices=("root", "rootless", "all"),
        default="all",
        help="Which installation to remove (default: all)",
    )

    return p


def _run_uninstall(args: argparse.Namespace, cfg: InstallerConfig) -> None:
    host = detect_host()
    if host["os"] != "linux":
        raise UnsupportedPlatformError("Uninstall is only supported on Linux. Use Docker Desktop's uninstaller on macOS.")
    if not ask(
        f"This will remove Docker ({args.mode}) and its data. Proceed? (y/N):",
        assume_yes=cfg.assume_yes,
    ):
        raise UserAbort()
    uninstall(args.mode, rootless_paths_for(host), str(host["user"]), dry_run=cfg.dry_run)


def dispatch(args: argparse.Namespace) -> Dict[str, Any]:
    config = config_from_args(args)

    if args.command == "uninstall":
        _run_uninstall(args, InstallerConfig(raw=config))
        return {}

    if args.command == "setup":
        logger.info(BANNER)
        logger.info("Starting Lumigator setup...")
        steps, confirm = build_setup_steps(), confirm_setup
    elif args.command == "install-docker":
        steps, confirm = build_install_docker_steps(), None
    elif args.command == "ensure-compose":
        steps, confirm = build_ensure_compose_steps(), None
    else:
        config["mode"] = "rootless"
        config["reinstall"] = True
        config.setdefault("project_root_dir", str(Path.home()))
        steps, confirm = build_fix_rootless_steps(), None

    return run(
        steps=steps,
        config=config,
        state_path=args.state,
        resume=bool(getattr(args, "resume", False)),
        start_at=getattr(args, "start_at", None),
        stop_after=getattr(args, "stop_after", None),
        force=bool(getattr(args, "force", False)),
        confirm=confirm,
    )


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(log_path=args.log, quiet=bool(args.quiet))

    try:
        dispatch(args)
    except UserAbort as e:
        logger.warning("%s", e)
        return e.exit_code
    except InstallerError as e:
        logger.error("Error: %s", e)
        return 1
    except Exception:
        logger.exception("Installer failed")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
