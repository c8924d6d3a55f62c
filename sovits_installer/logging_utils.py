from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

from .lib.env import PATHS

FALLBACK_LOG_NAME = "sovits-installer.log"

FILE_FORMAT = logging.Formatter(
    fmt="%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
)
# Same tags the shell installers print: [INFO]: ..., [ERROR]: ...
CONSOLE_FORMAT = logging.Formatter(fmt="[%(levelname)s]: %(message)s")

# Per-download chatter from urllib3 would drown the fetch summary.
QUIET_LOGGERS = ("urllib3",)

_active_path: Optional[str] = None


def _open_log_file(requested: str) -> Tuple[logging.FileHandler, str]:
    try:
        Path(requested).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(requested, encoding="utf-8"), requested
    except OSError:
        fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
        return logging.FileHandler(fallback, encoding="utf-8"), fallback


def configure_logging(
    log_path: str = PATHS.log_default,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Attach file and console handlers to the root logger, once per process.

    An unwritable ``log_path`` falls back to ``sovits-installer.log`` in the
    working directory. Returns the file actually written, which the caller
    records in state next to the requested one.
    """

    global _active_path

    root = logging.getLogger()
    root.setLevel(level)
    if _active_path is not None:
        return _active_path

    file_handler, _active_path = _open_log_file(log_path)
    file_handler.setFormatter(FILE_FORMAT)
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(CONSOLE_FORMAT)
        root.addHandler(console)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).info("Log file: %s (requested %s)", _active_path, log_path)
    return _active_path
