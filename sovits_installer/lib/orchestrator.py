from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from ..errors import FetchError
from .fetch import FetchTask, RetryPolicy, fetch_with_retry

logger = logging.getLogger(__name__)

Fetcher = Callable[[FetchTask, RetryPolicy], Any]


@dataclass(frozen=True)
class FetchResult:
    task: FetchTask
    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class OrchestrationResult:
    ok: bool
    failed: List[str]
    skipped: List[str] = field(default_factory=list)
    fetched: List[str] = field(default_factory=list)
    results: List[FetchResult] = field(default_factory=list)


class FetchOrchestrator:
    """Skip present resources, fetch the rest concurrently, join, report.

    One worker per scheduled task. A failing worker sets the failure marker and
    returns; siblings keep running. The result is only read after every worker
    has joined.
    """

    def __init__(
        self,
        *,
        fetcher: Fetcher = fetch_with_retry,
        policy: Optional[RetryPolicy] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.fetcher = fetcher
        self.policy = policy or RetryPolicy()
        self.max_workers = max_workers

    def _work(self, task: FetchTask, failed: threading.Event) -> FetchResult:
        try:
            self.fetcher(task, task.policy or self.policy)
        except (FetchError, OSError) as e:
            failed.set()
            logger.error("Download of %s failed: %s", task.name, e)
            return FetchResult(task=task, ok=False, error=str(e))
        return FetchResult(task=task, ok=True)

    def run(self, tasks: Sequence[FetchTask]) -> OrchestrationResult:
        skipped: List[str] = []
        scheduled: List[FetchTask] = []
        for t in tasks:
            if t.is_present():
                logger.info("Skipping %s (already present)", t.name)
                skipped.append(t.name)
            else:
                scheduled.append(t)

        if not scheduled:
            logger.info("All models and data files already exist. Skipping download.")
            return OrchestrationResult(ok=True, failed=[], skipped=skipped)

        failed = threading.Event()
        workers = min(len(scheduled), self.max_workers or len(scheduled))
        logger.info("Starting download of %d resource(s) with %d worker(s)", len(scheduled), workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fetch") as pool:
            futures = [pool.submit(self._work, t, failed) for t in scheduled]
            results = [f.result() for f in futures]

        failed_names = [r.task.name for r in results if not r.ok]
        fetched = [r.task.name for r in results if r.ok]
        if failed.is_set():
            logger.error("Download failed for: %s", ", ".join(failed_names))
        else:
            logger.info("All files downloaded.")
        return OrchestrationResult(
            ok=not failed.is_set(),
            failed=failed_names,
            skipped=skipped,
            fetched=fetched,
            results=results,
        )
