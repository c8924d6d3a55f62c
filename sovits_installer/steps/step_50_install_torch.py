from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.pkg import uv_pip_install
from ..lib.runtime import resolve_device, torch_index_url
from ..state_store import add_warning

logger = logging.getLogger(__name__)


class InstallTorchStep:
    step_id = "50_install_torch"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        host = state.get("host") or {}
        dry_run = bool(cfg.get("dry_run", False))
        workflow = bool(cfg.get("workflow", False))
        requested = str(cfg.get("device"))

        device, warning = resolve_device(requested, host, workflow=workflow)
        if warning:
            logger.warning(warning)
            add_warning(state, step=self.step_id, reason=warning)

        decisions = state.setdefault("execution", {}).setdefault("decisions", {})
        decisions["device"] = device
        decisions["wsl_rocm_fix"] = (not workflow) and device == "ROCM" and bool(host.get("wsl"))

        if workflow:
            logger.info("Workflow mode: skipping PyTorch install")
            return state

        index_url = torch_index_url(device)
        decisions["torch_index_url"] = index_url
        logger.info("Installing PyTorch from %s...", index_url)
        uv_pip_install(["torch", "torchaudio", "--index-url", index_url], dry_run=dry_run)
        logger.info("PyTorch installed.")
        return state
