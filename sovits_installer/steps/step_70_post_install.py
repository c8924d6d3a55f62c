from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..lib.archives import unpack_all
from ..lib.resources import build_unpack_jobs
from ..lib.runtime import apply_wsl_rocm_fix, torch_location

logger = logging.getLogger(__name__)


class PostInstallStep:
    step_id = "70_post_install"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        workdir = Path(cfg.get("workdir") or ".")
        decisions = (state.get("execution") or {}).get("decisions") or {}

        # Open JTalk dictionary lives inside the pyopenjtalk package, so it waits for requirements.
        done = unpack_all(build_unpack_jobs(workdir=workdir, deferred=True), dry_run=dry_run)
        if done:
            logger.info("Open JTalk dictionary configured.")
            state.setdefault("execution", {}).setdefault("unpacked", []).extend(done)

        if decisions.get("wsl_rocm_fix"):
            logger.info("Applying WSL compatibility fix for ROCm...")
            torch_lib = torch_location(dry_run=dry_run) / "torch" / "lib"
            apply_wsl_rocm_fix(torch_lib, dry_run=dry_run)
            logger.info("ROCm fix applied.")

        logger.info("Installation has completed successfully!")
        return state
