from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import FetchPhaseError
from ..lib.orchestrator import FetchOrchestrator
from ..lib.resources import MIRROR_LABELS, build_fetch_tasks
from ..settings import InstallerSettings

logger = logging.getLogger(__name__)


class FetchResourcesStep:
    step_id = "30_fetch_resources"

    def __init__(
        self,
        settings: Optional[InstallerSettings] = None,
        orchestrator: Optional[FetchOrchestrator] = None,
    ) -> None:
        self.settings = settings or InstallerSettings()
        self.orchestrator = orchestrator or FetchOrchestrator(
            policy=self.settings.retry_policy,
            max_workers=self.settings.max_workers,
        )

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        workdir = Path(cfg.get("workdir") or ".")
        source = str(cfg.get("source"))

        logger.info("Download source: %s", MIRROR_LABELS.get(source, source))
        tasks = build_fetch_tasks(
            workdir=workdir,
            source=source,
            download_uvr5=bool(cfg.get("download_uvr5", False)),
            settings=self.settings,
        )

        if dry_run:
            pending = [t for t in tasks if not t.is_present()]
            for t in pending:
                logger.info("Would fetch %s <- %s", t.dest, t.url)
            state.setdefault("execution", {})["fetch"] = {"planned": [t.name for t in pending]}
            return state

        result = self.orchestrator.run(tasks)
        state.setdefault("execution", {})["fetch"] = {
            "fetched": result.fetched,
            "skipped": result.skipped,
            "failed": result.failed,
        }
        if not result.ok:
            raise FetchPhaseError(result.failed)
        return state
