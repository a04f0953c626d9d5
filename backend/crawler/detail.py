"""
Detail fan-out scheduler.

Enriches listing summaries with their detail pages on a fixed-size thread
pool. Postings that are already stored and active are skipped before any
page is loaded.

Each batch runs as a handful of drain jobs on the executor. A drain job
pulls tasks from the batch queue until it is empty, using one browser
session that it releases when it finishes. Every task has its own
deadline; the scheduler's wait is bounded too, so a hung page load is
abandoned instead of blocking the crawl.
"""

import math
import os
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait, FIRST_COMPLETED
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import logging

from bs4 import BeautifulSoup

from .base import CrawlTask, JobRecord, JobSummary, Outcome, SessionError, SiteAdapter, TaskResult
from .cancellation import CancelToken
from .crawlers.fetcher import PageFetcher
from .crawlers.session import BrowserSessionPool
from .persistence import RecordWriter

logger = logging.getLogger(__name__)


def compute_pool_size(min_workers: int = 3, max_workers: int = 8, cpu_count: Optional[int] = None) -> int:
    """
    Worker count: available parallelism clamped to [min_workers, max_workers].

    Examples:
        compute_pool_size(cpu_count=2) -> 3
        compute_pool_size(cpu_count=6) -> 6
        compute_pool_size(cpu_count=32) -> 8
    """
    cpus = cpu_count if cpu_count is not None else (os.cpu_count() or min_workers)
    return max(min_workers, min(max_workers, cpus))


@dataclass
class DetailResult:
    """Counts for one detail batch."""
    submitted: int = 0
    skipped_existing: int = 0
    skipped_no_url: int = 0
    saved: int = 0
    duplicates: int = 0
    invalid: int = 0
    failed: int = 0
    timeouts: int = 0
    cancelled: int = 0
    results: List[TaskResult] = field(default_factory=list)

    def record(self, task_result: TaskResult):
        self.results.append(task_result)
        status = task_result.status
        if status == 'saved':
            self.saved += 1
        elif status == 'duplicate':
            self.duplicates += 1
        elif status == 'invalid':
            self.invalid += 1
        elif status == 'timeout':
            self.timeouts += 1
        elif status == 'cancelled':
            self.cancelled += 1
        else:
            self.failed += 1

    @property
    def finished(self) -> int:
        return len(self.results)


class _Batch:
    """Shared state of one run() call: the task queue and the result sink."""

    def __init__(self, tasks: List[CrawlTask], cancel: CancelToken):
        self.queue: 'queue.Queue[CrawlTask]' = queue.Queue()
        for task in tasks:
            self.queue.put(task)
        self.cancel = cancel
        self.result = DetailResult(submitted=len(tasks))
        self.closed = False
        self._lock = threading.Lock()

    def record(self, task_result: TaskResult):
        with self._lock:
            # Results arriving after the batch was abandoned are already counted
            if not self.closed:
                self.result.record(task_result)

    def close(self) -> int:
        """Stop accepting results; returns how many tasks never reported."""
        with self._lock:
            self.closed = True
            return self.result.submitted - self.result.finished


class DetailScheduler:
    """
    Bounded worker pool for detail-page enrichment.

    Usage:
        scheduler = DetailScheduler(fetcher, pool, writer, repository.exists_active_by_url)
        try:
            result = scheduler.run(adapter, summaries, cancel)
        finally:
            scheduler.shutdown()
    """

    GRACE_SECONDS = 5.0

    def __init__(
        self,
        fetcher: PageFetcher,
        pool: BrowserSessionPool,
        writer: RecordWriter,
        exists_fn: Callable[[str], bool],
        pool_size: Optional[int] = None,
        task_timeout: float = 60.0,
        grace_seconds: float = GRACE_SECONDS,
    ):
        """
        Args:
            fetcher: Page fetch state machine
            pool: Worker-local browser sessions
            writer: Persists enriched records
            exists_fn: True when a URL is already stored and active
            pool_size: Worker threads (defaults to compute_pool_size())
            task_timeout: Seconds one detail task may take
            grace_seconds: Slack added to the batch wait bound
        """
        self.fetcher = fetcher
        self.pool = pool
        self.writer = writer
        self.exists_fn = exists_fn
        self.pool_size = pool_size or compute_pool_size()
        self.task_timeout = task_timeout
        self.grace_seconds = grace_seconds

        try:
            self._executor = ThreadPoolExecutor(max_workers=self.pool_size, thread_name_prefix='detail')
        except Exception as e:
            logger.error(f"Failed to create detail worker pool: {e}")
            raise
        logger.info(f"Detail scheduler ready with {self.pool_size} workers")

    def run(
        self,
        adapter: SiteAdapter,
        summaries: List[JobSummary],
        cancel: Optional[CancelToken] = None,
    ) -> DetailResult:
        """
        Fetch and persist the detail page of every new summary.

        Returns once every task finished, timed out or was abandoned.
        """
        cancel = cancel or CancelToken()
        label = adapter.config.name

        tasks: List[CrawlTask] = []
        skipped_existing = 0
        skipped_no_url = 0
        for summary in summaries:
            if not summary.detail_url:
                skipped_no_url += 1
                logger.debug(f"{label} no detail URL: {summary.company} - {summary.title}")
                continue
            if self._already_stored(summary.detail_url):
                skipped_existing += 1
                logger.debug(f"{label} detail skipped (already active): {summary.company} - {summary.title}")
                continue
            tasks.append(CrawlTask(summary=summary, site_id=adapter.site_id))

        batch = _Batch(tasks, cancel.child())
        batch.result.skipped_existing = skipped_existing
        batch.result.skipped_no_url = skipped_no_url
        if not tasks:
            return batch.result

        workers = min(self.pool_size, len(tasks))
        logger.info(f"{label} fetching {len(tasks)} detail page(s) on {workers} worker(s), "
                    f"{skipped_existing} already stored")
        futures = {self._executor.submit(self._drain, adapter, batch) for _ in range(workers)}

        bound = math.ceil(len(tasks) / workers) * self.task_timeout + self.grace_seconds
        pending = self._wait(futures, batch, cancel, bound)

        missing = batch.close()
        if pending:
            batch.cancel.cancel()
            logger.warning(f"{label} detail batch exceeded {bound:.0f}s, abandoning {len(pending)} worker(s)")
            batch.result.timeouts += missing
        elif missing:
            batch.result.cancelled += missing

        result = batch.result
        logger.info(f"{label} details done: saved {result.saved}, duplicates {result.duplicates}, "
                    f"failed {result.failed}, timeouts {result.timeouts}")
        return result

    def _wait(self, futures, batch: _Batch, cancel: CancelToken, bound: float):
        """Join drain jobs until done or the bound passes. Returns the still-running ones."""
        end = time.monotonic() + bound
        pending = set(futures)
        while pending:
            remaining = end - time.monotonic()
            if remaining <= 0:
                break
            _, pending = wait(pending, timeout=min(remaining, 0.25), return_when=FIRST_COMPLETED)
            if cancel.cancelled and not batch.cancel.cancelled:
                logger.info("Cancellation requested, letting in-flight detail loads finish")
                batch.cancel.cancel()
        return pending

    def _already_stored(self, url: str) -> bool:
        try:
            return bool(self.exists_fn(url))
        except Exception as e:
            logger.debug(f"Existence check failed, fetching anyway: {url} ({e})")
            return False

    def _drain(self, adapter: SiteAdapter, batch: _Batch):
        try:
            while not batch.cancel.cancelled:
                try:
                    task = batch.queue.get_nowait()
                except queue.Empty:
                    break
                batch.record(self._run_task(adapter, task, batch.cancel))
        finally:
            self.pool.release()

    def _run_task(self, adapter: SiteAdapter, task: CrawlTask, cancel: CancelToken) -> TaskResult:
        """One detail page: fetch, parse, merge, write. Never raises."""
        url = task.summary.detail_url
        label = adapter.config.name
        deadline = time.monotonic() + self.task_timeout

        try:
            session = self.pool.acquire()
        except SessionError as e:
            logger.warning(f"{label} no browser session for {url}: {e}")
            return TaskResult(url=url, status='failed', reason='session')

        try:
            fetched = self.fetcher.fetch(session, url, cancel=cancel, deadline=deadline, label=label)

            if fetched.outcome == Outcome.FATAL:
                self.pool.discard(fetched.error or 'session fault')
                return TaskResult(url=url, status='failed', reason='session')
            if fetched.outcome == Outcome.SKIPPED:
                return TaskResult(url=url, status='cancelled', reason=fetched.reason)
            if fetched.reason == 'timeout' or time.monotonic() > deadline:
                return self._timed_out(label, url)
            if not fetched.ok:
                return TaskResult(url=url, status='failed', reason=fetched.reason)

            page = BeautifulSoup(fetched.html, 'html.parser')
            container = adapter.locate_detail_container(page)
            if container is None:
                logger.debug(f"{label} no detail container, parsing whole page: {url}")
            detail = adapter.parse_detail(container if container is not None else page)
            record = JobRecord.from_summary(task.summary, **detail)

            if time.monotonic() > deadline:
                return self._timed_out(label, url)
            return TaskResult(url=url, status=self.writer.write(record))

        except SessionError as e:
            self.pool.discard(str(e))
            return TaskResult(url=url, status='failed', reason='session')
        except Exception as e:
            logger.warning(f"{label} detail task failed: {url} - {e}")
            return TaskResult(url=url, status='failed', reason=str(e))

    def _timed_out(self, label: str, url: str) -> TaskResult:
        logger.warning(f"{label} detail task timed out after {self.task_timeout:.0f}s: {url}")
        self.pool.discard('task timeout')
        return TaskResult(url=url, status='timeout')

    def shutdown(self):
        """Stop the worker pool. Abandoned loads are not waited for."""
        self._executor.shutdown(wait=False, cancel_futures=True)
