"""Scrape job queueing.

Two interchangeable backends implement :class:`JobQueue`:

``CeleryJobQueue``
    Durable. One Celery task per URL on the ``scrape`` queue; retries,
    backoff and bounded concurrency come from the task options and worker
    configuration (see ``mediaharvest.workers``).

``WorkerPool``
    In-process asyncio pool used by the CLI and by single-process
    deployments. Same state machine and policy, no durability.

Job lifecycle::

    PENDING -> IN_FLIGHT -> COMPLETED
                         -> RETRYING -> IN_FLIGHT ...
                         -> FAILED      (attempts exhausted)

Completed jobs are dropped immediately; permanently failed ones are kept in a
bounded recent-failures list for operators.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol, Sequence

from mediaharvest.config import settings
from mediaharvest.core.metrics import scrape_jobs_submitted_total, scrape_jobs_total
from mediaharvest.core.redis import ResilientRedis, redis_client
from mediaharvest.middleware.request_id import bound_request_id
from mediaharvest.schemas.media import FailedJob

logger = logging.getLogger(__name__)

# Redis list holding permanently failed jobs (newest first)
FAILED_JOBS_KEY = "dlq:scrape"

JobHandler = Callable[[str], Awaitable[Any]]


class JobState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ScrapeJob:
    target_url: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    attempt_count: int = 0  # retries so far; the first run is attempt 0
    state: JobState = JobState.PENDING
    last_error: str | None = None


def retry_delay(
    attempt: int,
    base: float = settings.SCRAPE_RETRY_BACKOFF_SECONDS,
    cap: float = settings.SCRAPE_RETRY_BACKOFF_MAX_SECONDS,
) -> float:
    """Exponential backoff before retry number ``attempt`` (1-based)."""
    return min(cap, base * (2 ** max(0, attempt - 1)))


def failure_entry(url: str, error: BaseException | str, attempts: int) -> FailedJob:
    message = error if isinstance(error, str) else f"{type(error).__name__}: {error}"
    return FailedJob(
        url=url,
        error=message,
        attempts=attempts,
        failed_at=datetime.now(timezone.utc),
    )


class JobQueue(Protocol):
    backend: str

    async def submit(self, urls: Sequence[str]) -> int: ...

    async def recent_failures(self) -> list[FailedJob]: ...

    async def close(self) -> None: ...


# ---------------------------------------------------------------------------
# In-process pool
# ---------------------------------------------------------------------------


class WorkerPool:
    """Bounded asyncio worker pool.

    At most ``concurrency`` jobs are IN_FLIGHT at any moment no matter how
    many are pending. Backoff sleeps happen outside the slot, so a retrying
    job never blocks a worker.
    """

    backend = "local"

    def __init__(
        self,
        handler: JobHandler,
        concurrency: int = settings.SCRAPE_CONCURRENCY,
        max_attempts: int = settings.SCRAPE_MAX_ATTEMPTS,
        backoff: float = settings.SCRAPE_RETRY_BACKOFF_SECONDS,
        backoff_max: float = settings.SCRAPE_RETRY_BACKOFF_MAX_SECONDS,
        failures_max: int = settings.FAILED_JOBS_MAX,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._handler = handler
        self._concurrency = concurrency
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff
        self._backoff_max = backoff_max
        self._semaphore = asyncio.Semaphore(concurrency)
        self._tasks: set[asyncio.Task] = set()
        self._failures: deque[FailedJob] = deque(maxlen=failures_max)
        self._on_close = on_close
        self.in_flight = 0
        self.peak_in_flight = 0
        self.pending = 0
        self.completed = 0
        self.failed = 0

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def submit(self, urls: Sequence[str]) -> int:
        for url in urls:
            job = ScrapeJob(target_url=url)
            task = asyncio.create_task(self._run(job), name=f"scrape:{job.id}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        scrape_jobs_submitted_total.labels(backend=self.backend).inc(len(urls))
        return len(urls)

    async def _attempt(self, job: ScrapeJob) -> BaseException | None:
        self.pending += 1
        async with self._semaphore:
            self.pending -= 1
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            job.state = JobState.IN_FLIGHT
            try:
                await self._handler(job.target_url)
            except Exception as e:
                return e
            finally:
                self.in_flight -= 1
        return None

    async def _run(self, job: ScrapeJob) -> None:
        with bound_request_id(job.id):
            while True:
                error = await self._attempt(job)
                if error is None:
                    job.state = JobState.COMPLETED
                    self.completed += 1
                    scrape_jobs_total.labels(status="completed").inc()
                    return

                job.last_error = f"{type(error).__name__}: {error}"
                if job.attempt_count + 1 < self._max_attempts:
                    job.attempt_count += 1
                    job.state = JobState.RETRYING
                    delay = retry_delay(job.attempt_count, self._backoff, self._backoff_max)
                    scrape_jobs_total.labels(status="retrying").inc()
                    logger.warning(
                        f"Scrape of {job.target_url} failed ({job.last_error}), "
                        f"retry {job.attempt_count} in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue

                job.state = JobState.FAILED
                self.failed += 1
                self._failures.appendleft(
                    failure_entry(job.target_url, error, job.attempt_count + 1)
                )
                scrape_jobs_total.labels(status="failed").inc()
                logger.error(
                    f"Scrape of {job.target_url} failed permanently after "
                    f"{job.attempt_count + 1} attempt(s): {job.last_error}"
                )
                return

    async def join(self) -> None:
        """Wait until every submitted job has completed or failed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def recent_failures(self) -> list[FailedJob]:
        return list(self._failures)

    async def close(self) -> None:
        """Cancel outstanding jobs (submissions are fire-and-forget)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._on_close is not None:
            await self._on_close()

    async def __aenter__(self) -> "WorkerPool":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# Durable Celery-backed queue
# ---------------------------------------------------------------------------


class CeleryJobQueue:
    backend = "celery"

    def __init__(self, redis: ResilientRedis | None = None):
        self._redis = redis or redis_client

    @staticmethod
    def _publish(urls: Sequence[str]) -> None:
        from celery import group

        from mediaharvest.workers.scrape_worker import process_scrape_url

        group(process_scrape_url.s(url) for url in urls).apply_async()

    async def submit(self, urls: Sequence[str]) -> int:
        if urls:
            # Publishing is blocking broker I/O
            await asyncio.to_thread(self._publish, list(urls))
        scrape_jobs_submitted_total.labels(backend=self.backend).inc(len(urls))
        return len(urls)

    async def recent_failures(self) -> list[FailedJob]:
        raw = await self._redis.lrange(FAILED_JOBS_KEY, 0, settings.FAILED_JOBS_MAX - 1)
        failures = []
        for entry in raw or []:
            try:
                failures.append(FailedJob.model_validate(json.loads(entry)))
            except ValueError as e:
                logger.warning(f"Skipping malformed failed-job entry: {e}")
        return failures

    async def close(self) -> None:
        return None


def create_job_queue(backend: str | None = None) -> JobQueue:
    """Queue for the configured backend.

    The local backend owns a Fetcher (one connection pool) and writes through
    the application's session factory; both live until :meth:`close`.
    """
    backend = backend or settings.QUEUE_BACKEND
    if backend == "local":
        from functools import partial

        from mediaharvest.core.database import async_session
        from mediaharvest.services.fetcher import Fetcher
        from mediaharvest.services.pipeline import scrape_and_store

        fetcher = Fetcher.from_settings()
        handler = partial(scrape_and_store, fetcher=fetcher, session_factory=async_session)
        return WorkerPool(handler, on_close=fetcher.aclose)
    return CeleryJobQueue()
