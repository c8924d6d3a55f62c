from __future__ import annotations

import logging
import time
from typing import Callable, List, Sequence

from ..errors import CommandError, DependencyInstallError
from .command import run_cmd

logger = logging.getLogger(__name__)

BASE_TOOLS = ["ffmpeg", "cmake", "make", "unzip", "uv", "aria2"]
MIN_GCC_MAJOR = 11


def conda_install(packages: Sequence[str], *, dry_run: bool = False) -> None:
    if not packages:
        return
    argv = ["conda", "install", "--yes", "--quiet", "-c", "conda-forge", *packages]
    try:
        run_cmd(argv, dry_run=dry_run)
    except CommandError as e:
        raise DependencyInstallError("Conda", e.output or str(e)) from e


def uv_pip_install(args: Sequence[str], *, dry_run: bool = False) -> None:
    if not args:
        return
    try:
        run_cmd(["uv", "pip", "install", *args], dry_run=dry_run)
    except CommandError as e:
        raise DependencyInstallError("UV Pip", e.output or str(e)) from e


def system_packages(*, is_macos: bool, gcc_major: int, sysroot: str | None) -> List[str]:
    """conda-forge packages needed for building wheels and processing audio."""

    if is_macos:
        return list(BASE_TOOLS)
    if gcc_major < MIN_GCC_MAJOR:
        if not sysroot:
            raise ValueError("sysroot package required when installing gcc")
        return [f"gcc={MIN_GCC_MAJOR}", f"gxx={MIN_GCC_MAJOR}", sysroot, *BASE_TOOLS]
    return [f"libstdcxx-ng>={gcc_major}", *BASE_TOOLS]


def xcode_tools_installed(*, dry_run: bool = False) -> bool:
    if dry_run:
        return True
    return run_cmd(["xcode-select", "-p"], check=False).returncode == 0


def ensure_xcode_tools(
    *,
    poll_interval: float = 20.0,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Trigger the Command Line Tools installer and block until it finishes."""

    if xcode_tools_installed(dry_run=dry_run):
        return
    logger.info("Installing Xcode Command Line Tools...")
    run_cmd(["xcode-select", "--install"], check=False)
    logger.info("Waiting for Xcode Command Line Tools installation to complete...")
    while not xcode_tools_installed():
        sleep(poll_interval)
        logger.info("Still waiting...")
