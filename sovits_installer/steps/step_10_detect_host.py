from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from ..errors import ConfigError
from ..lib.hwdetect import detect_host, sysroot_package

logger = logging.getLogger(__name__)


class DetectHostStep:
    step_id = "10_detect_host"

    def __init__(self, detect: Callable[..., Dict[str, Any]] = detect_host) -> None:
        self._detect = detect

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))

        host = self._detect(dry_run=dry_run)
        if not host.get("conda") and not dry_run:
            raise ConfigError("Conda Not Found")

        # Arch is validated on every OS, the sysroot itself is only used on Linux.
        host["sysroot"] = sysroot_package(str(host.get("machine") or host.get("arch") or ""))
        state["host"] = host
        return state
