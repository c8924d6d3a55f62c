from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    state_default: str = ".sovits-installer/state.json"
    log_default: str = "logs/sovits-installer.log"
    rocm_root: str = "/opt/rocm"
    proc_version: str = "/proc/version"
    requirements: tuple[str, ...] = ("extra-req.txt", "requirements.txt")


PATHS = Paths()

TORCH_INDEX_BASE = "https://download.pytorch.org/whl"
ROCM_WHEEL_TAG = "rocm6.2"


def workflow_enabled(environ: dict[str, str] | None = None) -> bool:
    """Any WORKFLOW value except the literal "false" means a CI image build.

    Workflow mode skips the driver checks and the torch install. Unset or empty
    counts as "false".
    """

    env = os.environ if environ is None else environ
    return (env.get("WORKFLOW") or "false") != "false"
