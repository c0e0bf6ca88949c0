import asyncio
import logging
import time
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from mediaharvest.config import settings
from mediaharvest.core.database import create_worker_session_factory
from mediaharvest.core.metrics import (
    scrape_jobs_total,
    worker_active_tasks,
    worker_task_duration_seconds,
    worker_task_total,
)
from mediaharvest.middleware.request_id import bound_request_id
from mediaharvest.services.fetcher import Fetcher
from mediaharvest.services.pipeline import scrape_and_store
from mediaharvest.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

_WORKER_NAME = "scrape"


@dataclass
class _Runtime:
    loop: asyncio.AbstractEventLoop
    fetcher: Fetcher
    session_factory: async_sessionmaker[AsyncSession]
    engine: AsyncEngine


# One per worker child, created on fork and reused by every task it runs
_runtime: _Runtime | None = None


def start_runtime() -> _Runtime:
    global _runtime
    if _runtime is not None:
        return _runtime
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    session_factory, engine = create_worker_session_factory()
    _runtime = _Runtime(
        loop=loop,
        fetcher=Fetcher.from_settings(),
        session_factory=session_factory,
        engine=engine,
    )
    return _runtime


def stop_runtime() -> None:
    global _runtime
    if _runtime is None:
        return
    rt, _runtime = _runtime, None
    try:
        rt.loop.run_until_complete(rt.fetcher.aclose())
        rt.loop.run_until_complete(rt.engine.dispose())
    finally:
        rt.loop.close()


@celery_app.task(
    name="mediaharvest.workers.scrape_worker.process_scrape_url",
    bind=True,
    max_retries=settings.SCRAPE_MAX_ATTEMPTS - 1,
    autoretry_for=(Exception,),
    retry_backoff=max(1, int(settings.SCRAPE_RETRY_BACKOFF_SECONDS)),
    retry_backoff_max=int(settings.SCRAPE_RETRY_BACKOFF_MAX_SECONDS),
    retry_jitter=True,
    soft_time_limit=settings.SCRAPE_TASK_SOFT_TIME_LIMIT,
    time_limit=settings.SCRAPE_TASK_SOFT_TIME_LIMIT + 30,
)
def process_scrape_url(self, url: str) -> int:
    """Scrape one page and store its media. Returns the number of new rows."""
    _start = time.monotonic()
    worker_active_tasks.labels(worker=_WORKER_NAME).inc()

    with bound_request_id(self.request.id):
        try:
            rt = start_runtime()
            inserted = rt.loop.run_until_complete(
                scrape_and_store(url, rt.fetcher, rt.session_factory)
            )
            worker_task_total.labels(worker=_WORKER_NAME, status="success").inc()
            scrape_jobs_total.labels(status="completed").inc()
            return inserted
        except Exception as e:
            worker_task_total.labels(worker=_WORKER_NAME, status="failure").inc()
            retries = self.request.retries or 0
            final = self.max_retries is not None and retries >= self.max_retries
            scrape_jobs_total.labels(status="failed" if final else "retrying").inc()
            logger.warning(
                f"Scrape of {url} failed on attempt {retries + 1}: {type(e).__name__}: {e}"
            )
            raise
        finally:
            worker_active_tasks.labels(worker=_WORKER_NAME).dec()
            worker_task_duration_seconds.labels(worker=_WORKER_NAME).observe(
                time.monotonic() - _start
            )
