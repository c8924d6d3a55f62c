from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import ConfigError
from .command import run_cmd, which
from .env import PATHS

logger = logging.getLogger(__name__)

_SYSROOT_PACKAGES = {
    "amd64": "sysroot_linux-64>=2.28",
    "arm64": "sysroot_linux-aarch64>=2.28",
    "ppc64le": "sysroot_linux-ppc64le>=2.28",
}


def normalize_arch(machine: str) -> str:
    m = machine.lower()
    return {
        "x86_64": "amd64",
        "amd64": "amd64",
        "aarch64": "arm64",
        "arm64": "arm64",
        "ppc64le": "ppc64le",
    }.get(m, m)


def sysroot_package(arch: str) -> str:
    """conda-forge sysroot matching the host arch; unsupported arches are a config error."""

    pkg = _SYSROOT_PACKAGES.get(normalize_arch(arch))
    if pkg is None:
        raise ConfigError(f"Unsupported architecture: {arch}")
    return pkg


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip()
        return txt or None
    except OSError:
        return None


def gcc_major_version(*, dry_run: bool = False) -> int:
    """Major version of the gcc on PATH, 0 when there is none."""

    if which("gcc") is None:
        return 0
    r = run_cmd(["gcc", "-dumpversion"], check=False, dry_run=dry_run)
    head = (r.stdout or "").strip().split(".", 1)[0]
    try:
        return int(head)
    except ValueError:
        return 0


def is_wsl(proc_version: str = PATHS.proc_version) -> bool:
    txt = _read_text(Path(proc_version)) or ""
    return "microsoft" in txt.lower()


def detect_host(*, dry_run: bool = False) -> Dict[str, Any]:
    machine = platform.machine()
    host: Dict[str, Any] = {
        "system": platform.system(),
        "release": platform.release(),
        "machine": machine,
        "arch": normalize_arch(machine),
        "is_macos": platform.system() == "Darwin",
        "conda": which("conda") is not None,
        "nvidia_smi": which("nvidia-smi") is not None,
        "rocm": Path(PATHS.rocm_root).is_dir(),
        "wsl": is_wsl(),
    }
    host["gcc_major"] = 0 if host["is_macos"] else gcc_major_version(dry_run=dry_run)

    logger.info("Detected system: %s %s %s", host["system"], host["release"], machine)
    return host
