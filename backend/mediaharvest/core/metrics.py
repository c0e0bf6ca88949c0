from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# ---------------------------------------------------------------------------
# Job submission / outcome counters
# ---------------------------------------------------------------------------
scrape_jobs_submitted_total = Counter(
    "scrape_jobs_submitted_total",
    "Total number of scrape jobs queued",
    ["backend"],
)
scrape_jobs_total = Counter(
    "scrape_jobs_total",
    "Scrape job attempts by outcome (completed, retrying, failed)",
    ["status"],
)

# ---------------------------------------------------------------------------
# Worker task metrics
# ---------------------------------------------------------------------------
worker_task_total = Counter(
    "worker_task_total",
    "Total worker tasks by worker name and outcome",
    ["worker", "status"],
)
worker_task_duration_seconds = Histogram(
    "worker_task_duration_seconds",
    "Duration of worker tasks in seconds",
    ["worker"],
    buckets=[0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60],
)
worker_active_tasks = Gauge(
    "worker_active_tasks",
    "Number of currently active worker tasks",
    ["worker"],
)

# ---------------------------------------------------------------------------
# Fetch / extraction
# ---------------------------------------------------------------------------
fetch_total = Counter(
    "fetch_total",
    "Page fetches by outcome (ok, http_error, timeout, network_error)",
    ["outcome"],
)
fetch_duration_seconds = Histogram(
    "fetch_duration_seconds",
    "Time spent fetching a single page",
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5],
)
media_extracted_total = Counter(
    "media_extracted_total",
    "Candidate media found by the extractor",
    ["type"],
)
media_inserted_total = Counter(
    "media_inserted_total",
    "Media rows actually inserted (after dedup)",
)

# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------
dlq_entries_total = Counter(
    "dlq_entries_total",
    "Total number of jobs recorded as permanently failed",
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
