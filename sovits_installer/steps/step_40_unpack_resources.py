from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..lib.archives import unpack_all
from ..lib.resources import build_unpack_jobs

logger = logging.getLogger(__name__)


class UnpackResourcesStep:
    step_id = "40_unpack_resources"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        workdir = Path(cfg.get("workdir") or ".")

        logger.info("Unpacking files...")
        done = unpack_all(build_unpack_jobs(workdir=workdir, deferred=False), dry_run=dry_run)
        state.setdefault("execution", {}).setdefault("unpacked", []).extend(done)
        logger.info("Unpacking complete.")
        return state
