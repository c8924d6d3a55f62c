from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import requests

from ..errors import FetchError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class RetryPolicy:
    """Uniform per-task retry policy: fixed attempts, fixed wait, fixed timeouts."""

    max_tries: int = 5
    retry_wait: float = 5.0
    read_timeout: float = 60.0
    connect_timeout: float = 30.0

    @classmethod
    def from_mapping(cls, raw: Optional[Dict[str, Any]], base: Optional["RetryPolicy"] = None) -> "RetryPolicy":
        b = base or cls()
        raw = raw or {}
        policy = cls(
            max_tries=int(raw.get("max_tries", b.max_tries)),
            retry_wait=float(raw.get("retry_wait", b.retry_wait)),
            read_timeout=float(raw.get("read_timeout", b.read_timeout)),
            connect_timeout=float(raw.get("connect_timeout", b.connect_timeout)),
        )
        if policy.max_tries < 1:
            raise ValueError("fetch.max_tries must be >= 1")
        return policy


@dataclass(frozen=True)
class FetchTask:
    name: str
    url: str
    dest: Path
    is_present: Callable[[], bool]
    policy: Optional[RetryPolicy] = None

    @property
    def part_path(self) -> Path:
        return self.dest.with_name(self.dest.name + ".part")


def _download_once(session: requests.Session, task: FetchTask, policy: RetryPolicy) -> None:
    part = task.part_path
    part.parent.mkdir(parents=True, exist_ok=True)

    offset = part.stat().st_size if part.exists() else 0
    headers = {"Range": f"bytes={offset}-"} if offset else {}

    with session.get(
        task.url,
        stream=True,
        headers=headers,
        timeout=(policy.connect_timeout, policy.read_timeout),
    ) as resp:
        if offset and resp.status_code == 416:
            # Nothing left to send: the part file already holds the whole archive.
            logger.info("%s: partial file already complete (%d bytes)", task.name, offset)
        else:
            resp.raise_for_status()
            resumed = bool(offset) and resp.status_code == 206
            if offset and not resumed:
                logger.info("%s: server ignored range request, restarting", task.name)
            expected = resp.headers.get("Content-Length")
            written = 0
            with part.open("ab" if resumed else "wb") as fh:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
                        written += len(chunk)
            # Content-Length counts encoded bytes; iter_content yields decoded ones.
            encoded = bool(resp.headers.get("Content-Encoding"))
            if expected is not None and not encoded and written != int(expected):
                raise OSError(f"{task.name}: short read ({written} of {expected} bytes)")

    os.replace(part, task.dest)


def fetch_with_retry(
    task: FetchTask,
    policy: RetryPolicy,
    *,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Path:
    """Download ``task.url`` to ``task.dest``, resuming partial files between attempts.

    Raises FetchError once ``policy.max_tries`` attempts have failed.
    """

    own_session = session is None
    sess = session or requests.Session()
    last: Optional[BaseException] = None
    try:
        for attempt in range(1, policy.max_tries + 1):
            try:
                logger.info("Fetching %s (attempt %d/%d) %s", task.name, attempt, policy.max_tries, task.url)
                _download_once(sess, task, policy)
                logger.info("Fetched %s -> %s", task.name, task.dest)
                return task.dest
            except (requests.RequestException, OSError) as e:
                last = e
                logger.warning("Fetch %s attempt %d failed: %s", task.name, attempt, e)
                if attempt < policy.max_tries:
                    sleep(policy.retry_wait)
    finally:
        if own_session:
            sess.close()

    raise FetchError(task.name, policy.max_tries, last)
