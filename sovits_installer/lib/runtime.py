from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..errors import ConfigError
from .command import run_cmd
from .env import PATHS, ROCM_WHEEL_TAG, TORCH_INDEX_BASE

logger = logging.getLogger(__name__)

DEVICES = ("CU126", "CU128", "ROCM", "MPS", "CPU")

_CUDA_VERSIONS = {"CU126": "126", "CU128": "128"}


def is_cuda(device: str) -> bool:
    return device in _CUDA_VERSIONS


def resolve_device(device: str, host: Dict[str, Any], *, workflow: bool) -> Tuple[str, Optional[str]]:
    """Return (effective_device, warning). Missing drivers fall back to CPU outside workflow mode."""

    if device not in DEVICES:
        raise ConfigError(f"Invalid Device: {device}")
    if workflow:
        return device, None
    if is_cuda(device) and not host.get("nvidia_smi"):
        return "CPU", "Nvidia Driver Not Found, Fallback to CPU"
    if device == "ROCM" and not host.get("rocm"):
        return "CPU", "ROCm Not Found, Fallback to CPU"
    return device, None


def torch_index_url(device: str) -> str:
    if is_cuda(device):
        return f"{TORCH_INDEX_BASE}/cu{_CUDA_VERSIONS[device]}"
    if device == "ROCM":
        return f"{TORCH_INDEX_BASE}/{ROCM_WHEEL_TAG}"
    return f"{TORCH_INDEX_BASE}/cpu"


def torch_location(*, dry_run: bool = False) -> Path:
    """site-packages dir holding torch, as reported by ``uv pip show``."""

    r = run_cmd(["uv", "pip", "show", "torch"], dry_run=dry_run)
    if dry_run:
        return Path("site-packages")
    for line in r.stdout.splitlines():
        key, _, value = line.partition(":")
        if key.strip() == "Location" and value.strip():
            return Path(value.strip())
    raise ConfigError("Could not determine torch install location")


def apply_wsl_rocm_fix(torch_lib: Path, rocm_root: str = PATHS.rocm_root, *, dry_run: bool = False) -> Path:
    """Replace torch's bundled libhsa-runtime64 with the system ROCm one (needed under WSL)."""

    src = (Path(rocm_root) / "lib/libhsa-runtime64.so").resolve()
    dst = torch_lib / "libhsa-runtime64.so"
    if dry_run:
        logger.info("Would replace %s with %s", dst, src)
        return dst
    if not src.is_file():
        raise ConfigError(f"ROCm runtime library missing: {src}")

    for old in torch_lib.glob("libhsa-runtime64.so*"):
        old.unlink()
    shutil.copy2(src, dst)
    logger.info("Copied %s -> %s", src, dst)
    return dst
