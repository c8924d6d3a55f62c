from __future__ import annotations

import logging
import tarfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Sequence

from ..errors import UnpackError

logger = logging.getLogger(__name__)

_TAR_SUFFIXES = (".tar.gz", ".tgz", ".tar")


@dataclass(frozen=True)
class UnpackJob:
    name: str
    archive: Path
    # Resolved lazily: some targets (site-packages dirs) only exist after later installs.
    dest_dir: Callable[[], Path]


def extract_archive(archive: Path, dest_dir: Path, *, remove: bool = True, dry_run: bool = False) -> None:
    """Extract fully, then delete the archive. On failure the archive stays for inspection."""

    if dry_run:
        logger.info("Would unpack %s -> %s", archive, dest_dir)
        return

    dest_dir.mkdir(parents=True, exist_ok=True)
    name = archive.name.lower()
    try:
        if name.endswith(".zip"):
            with zipfile.ZipFile(archive, "r") as zf:
                zf.extractall(dest_dir)
        elif name.endswith(_TAR_SUFFIXES):
            with tarfile.open(archive, "r:*") as tf:
                if hasattr(tarfile, "data_filter"):
                    tf.extractall(dest_dir, filter="data")
                else:
                    tf.extractall(dest_dir)
        else:
            raise ValueError(f"unknown archive type: {archive.name}")
    except (OSError, ValueError, zipfile.BadZipFile, tarfile.TarError) as e:
        raise UnpackError(str(archive), e) from e

    logger.info("Unpacked %s -> %s", archive.name, dest_dir)
    if remove:
        archive.unlink()


def unpack_all(jobs: Sequence[UnpackJob], *, dry_run: bool = False) -> List[str]:
    """Unpack jobs one at a time, in order. Jobs without an archive on disk are skipped."""

    done: List[str] = []
    for job in jobs:
        if not job.archive.is_file():
            logger.debug("Nothing to unpack for %s", job.name)
            continue
        extract_archive(job.archive, job.dest_dir(), dry_run=dry_run)
        done.append(job.name)
    return done
