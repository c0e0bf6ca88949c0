import logging

import redis
import sentry_sdk
from celery import Celery
from celery.signals import (
    task_failure, worker_process_init, worker_process_shutdown,
    worker_shutting_down,
)

from mediaharvest.config import settings
from mediaharvest.core.logging_config import configure_logging
from mediaharvest.core.metrics import dlq_entries_total
from mediaharvest.services.job_queue import FAILED_JOBS_KEY, failure_entry

# Initialize Sentry for Celery workers
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        environment=settings.SENTRY_ENVIRONMENT,
        release=f"mediaharvest@{settings.APP_VERSION}",
    )

logger = logging.getLogger(__name__)

celery_app = Celery(
    "mediaharvest",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Nobody waits on a scrape result; outcomes live in the media table and DLQ
    task_ignore_result=True,
    # A job is only removed from the broker once it completed or failed for good
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.SCRAPE_CONCURRENCY,
    task_routes={
        "mediaharvest.workers.scrape_worker.*": {"queue": "scrape"},
    },
    worker_max_tasks_per_child=1000,
    worker_hijack_root_logger=False,
)

# Explicitly include tasks
celery_app.conf.include = [
    "mediaharvest.workers.scrape_worker",
]

# ---------------------------------------------------------------------------
# Dead Letter Queue: persist jobs that exhausted their attempts
# ---------------------------------------------------------------------------


def _get_sync_redis():
    """Create a synchronous Redis client for signal handlers."""
    return redis.from_url(settings.REDIS_URL, decode_responses=True)


@task_failure.connect
def on_task_failure(sender=None, task_id=None, exception=None, args=None,
                    kwargs=None, traceback=None, einfo=None, **kw):
    """Push failed scrape jobs (after max retries exhausted) to the DLQ."""
    retries = getattr(sender.request, "retries", 0) if sender else 0
    max_retries = getattr(sender, "max_retries", 0) if sender else 0
    if max_retries is not None and retries < max_retries:
        return  # Will be retried, not a final failure

    url = (args[0] if args else None) or (kwargs or {}).get("url", "")
    entry = failure_entry(url, exception or "unknown error", retries + 1)

    try:
        r = _get_sync_redis()
        r.lpush(FAILED_JOBS_KEY, entry.model_dump_json())
        r.ltrim(FAILED_JOBS_KEY, 0, settings.FAILED_JOBS_MAX - 1)
        dlq_entries_total.inc()
        logger.warning(f"Task {task_id} for {url} added to DLQ after {retries + 1} attempt(s)")
    except redis.RedisError as e:
        logger.error(f"Failed to write to DLQ: {e}")


# ---------------------------------------------------------------------------
# Per-child runtime: logging, persistent loop, shared fetcher
# ---------------------------------------------------------------------------


@worker_process_init.connect
def init_worker_process(sender=None, **kwargs):
    """Set up the long-lived scrape runtime in each forked child.

    The event loop, HTTP connection pool and DB engine survive across tasks
    so keep-alive sockets are reused between jobs.
    """
    configure_logging(settings.LOG_FORMAT, settings.LOG_LEVEL)

    from mediaharvest.workers import scrape_worker

    scrape_worker.start_runtime()
    logger.info("Scrape worker child ready")


@worker_process_shutdown.connect
def shutdown_worker_process(sender=None, **kwargs):
    from mediaharvest.workers import scrape_worker

    scrape_worker.stop_runtime()


@worker_shutting_down.connect
def on_worker_shutting_down(sig=None, how=None, exitcode=None, **kw):
    """Log when a worker is shutting down."""
    logger.info(f"Worker shutting down (signal={sig}, how={how}, exitcode={exitcode})")
