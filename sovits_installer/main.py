from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

from .errors import CommandError, InstallerError, describe_chain, exit_code_for
from .lib.env import PATHS, workflow_enabled
from .lib.resources import MIRRORS
from .lib.runtime import DEVICES
from .logging_utils import configure_logging
from .pipeline import run_pipeline
from .settings import InstallerSettings, load_settings
from .state_store import apply_selection, ensure_defaults, load_state, save_state
from .steps import (
    DetectHostStep,
    FetchResourcesStep,
    InstallRequirementsStep,
    InstallSystemDepsStep,
    InstallTorchStep,
    PostInstallStep,
    UnpackResourcesStep,
)

logger = logging.getLogger(__name__)

EPILOG = """\
examples:
  sovits-install --device CU128 --source HF --download-uvr5
  sovits-install --device MPS --source ModelScope
"""


def build_steps(settings: Optional[InstallerSettings] = None):
    return [
        DetectHostStep(),
        InstallSystemDepsStep(),
        FetchResourcesStep(settings=settings),
        UnpackResourcesStep(),
        InstallTorchStep(),
        InstallRequirementsStep(),
        PostInstallStep(),
    ]


def _log_failure(e: BaseException) -> None:
    logger.error("Installer failed")
    for line in describe_chain(e):
        logger.error("  caused by %s", line)
    cur: Optional[BaseException] = e
    while cur is not None:
        if isinstance(cur, CommandError):
            logger.error(
                'Command "%s" failed with exit code %d\n%s',
                " ".join(cur.argv),
                cur.returncode,
                cur.output.strip(),
            )
            break
        cur = getattr(cur, "cause", None) or cur.__cause__
    logger.error("Call stack:", exc_info=e)


def run(
    *,
    device: str,
    source: str,
    download_uvr5: bool = False,
    workdir: str = ".",
    settings_path: Optional[str] = None,
    state_path: Optional[str] = None,
    log_path: Optional[str] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Run the install pipeline, persisting state for resume."""

    wd = Path(workdir).resolve()
    state_path = state_path or str(wd / PATHS.state_default)
    log_path = log_path or str(wd / PATHS.log_default)
    # Only a state file that parsed is written back; a corrupt one stays as it was.
    loaded = False
    state: Dict[str, Any] = {}
    try:
        actual_log_path = configure_logging(log_path=log_path)
        state = ensure_defaults(load_state(state_path))
        loaded = True
        apply_selection(
            state,
            {
                "device": device,
                "source": source,
                "download_uvr5": download_uvr5,
                "workflow": workflow_enabled(),
            },
        )
        state["config"]["workdir"] = str(wd)
        state["config"]["dry_run"] = dry_run
        paths = state.setdefault("execution", {}).setdefault("paths", {})
        paths["log_path_requested"] = log_path
        paths["log_path_actual"] = actual_log_path

        settings = load_settings(settings_path)
        result = run_pipeline(
            state=state,
            steps=build_steps(settings),
            start_at=start_at,
            stop_after=stop_after,
            force=force,
        )
        state = result.state
        summary = state.setdefault("execution", {}).setdefault("summary", {})
        summary["ran_steps"] = result.ran_steps
        summary["skipped_steps"] = result.skipped_steps
        return state
    except Exception as e:
        _log_failure(e)
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e),
                "exit_code": exit_code_for(e),
            }
        )
        raise
    finally:
        if loaded:
            save_state(state_path, state)


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog="sovits-install",
        description="Install GPT-SoVITS system tools, pretrained models and Python dependencies.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--device", required=True, choices=DEVICES, help="Target device (REQUIRED)")
    p.add_argument("--source", required=True, choices=list(MIRRORS), help="Model source (REQUIRED)")
    p.add_argument("--download-uvr5", action="store_true", help="Also download the UVR5 weights")
    p.add_argument("--workdir", default=".", help="GPT-SoVITS checkout to install into")
    p.add_argument("--config", default=None, help="Optional YAML settings (retry policy, mirrors)")
    p.add_argument("--state", default=None, help="Path to installer state (json|yaml)")
    p.add_argument("--log", default=None, help="Path to installer log")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 30_fetch_resources)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    p.add_argument("--dry-run", action="store_true", help="Log commands and downloads without running them")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    p = build_parser()
    if not argv:
        p.print_help()
        return 0

    args = p.parse_args(argv)

    try:
        run(
            device=args.device,
            source=args.source,
            download_uvr5=bool(args.download_uvr5),
            workdir=args.workdir,
            settings_path=args.config,
            state_path=args.state,
            log_path=args.log,
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=bool(args.force),
            dry_run=bool(args.dry_run),
        )
    except InstallerError as e:
        return exit_code_for(e)
    except Exception:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
