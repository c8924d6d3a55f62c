from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

from ..errors import ConfigError
from ..lib.env import PATHS
from ..lib.pkg import uv_pip_install

logger = logging.getLogger(__name__)


class InstallRequirementsStep:
    step_id = "60_install_requirements"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        workdir = Path(cfg.get("workdir") or ".")

        args: List[str] = []
        for name in PATHS.requirements:
            req = workdir / name
            if not req.is_file() and not dry_run:
                raise ConfigError(f"Requirements file missing: {req}")
            args += ["-r", str(req)]

        logger.info("Installing Python dependencies from requirements files...")
        uv_pip_install(args, dry_run=dry_run)
        logger.info("Python dependencies installed.")
        return state
