from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.pkg import MIN_GCC_MAJOR, conda_install, ensure_xcode_tools, system_packages

logger = logging.getLogger(__name__)


class InstallSystemDepsStep:
    step_id = "20_install_system_deps"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        host = state.get("host") or {}
        dry_run = bool(cfg.get("dry_run", False))

        is_macos = bool(host.get("is_macos", False))
        gcc_major = int(host.get("gcc_major") or 0)

        if is_macos:
            ensure_xcode_tools(dry_run=dry_run)
            logger.info("Installing essential tools (uv, aria2, etc)...")
        elif gcc_major < MIN_GCC_MAJOR:
            logger.info("Installing GCC, G++, and essential tools (uv, aria2, etc)...")
        else:
            logger.info("Detected GCC version %d. Installing tools (uv, aria2, etc)...", gcc_major)

        packages = system_packages(is_macos=is_macos, gcc_major=gcc_major, sysroot=host.get("sysroot"))
        conda_install(packages, dry_run=dry_run)

        state.setdefault("execution", {}).setdefault("plan", {})["system_packages"] = packages
        logger.info("System-level dependencies and tools are ready.")
        return state
