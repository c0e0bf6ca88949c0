import logging

from pydantic_settings import BaseSettings
from typing import List

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # App
    APP_NAME: str = "MediaHarvest"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Database (SQLite default lets a bare checkout run without .env)
    DATABASE_URL: str = "sqlite+aiosqlite:///./mediaharvest.db"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # Job queue: "celery" (durable, Redis-backed) or "local" (in-process pool)
    QUEUE_BACKEND: str = "celery"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Scraping
    SCRAPE_TIMEOUT_SECONDS: float = 5.0
    SCRAPE_MAX_REDIRECTS: int = 3
    SCRAPE_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )
    SCRAPE_ACCEPT_LANGUAGE: str = "en-US,en;q=0.9"
    SCRAPE_MAX_CONNECTIONS: int = 256  # Per-process keep-alive socket ceiling
    SCRAPE_EXTRACTION_THREADS: int = 4

    # Worker pool
    SCRAPE_CONCURRENCY: int = 50  # I/O bound, well above CPU count
    SCRAPE_MAX_ATTEMPTS: int = 2  # Total attempts including the first
    SCRAPE_RETRY_BACKOFF_SECONDS: float = 1.0
    SCRAPE_RETRY_BACKOFF_MAX_SECONDS: float = 30.0
    SCRAPE_TASK_SOFT_TIME_LIMIT: int = 60
    FAILED_JOBS_MAX: int = 100  # Recent permanent failures kept for operators

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Database Pool
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    WORKER_DB_POOL_SIZE: int = 5

    # Redis Pool
    REDIS_MAX_CONNECTIONS: int = 50

    # Sentry
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2
    SENTRY_ENVIRONMENT: str = "development"

    # Logging
    LOG_FORMAT: str = "json"  # "json" for production, "text" for development
    LOG_LEVEL: str = "INFO"

    # Metrics
    METRICS_ENABLED: bool = True

    def model_post_init(self, __context) -> None:
        if self.QUEUE_BACKEND not in ("celery", "local"):
            _logger.warning(
                "Unknown QUEUE_BACKEND %r — falling back to 'celery'",
                self.QUEUE_BACKEND,
            )
            object.__setattr__(self, "QUEUE_BACKEND", "celery")
        if self.SCRAPE_MAX_ATTEMPTS < 1:
            object.__setattr__(self, "SCRAPE_MAX_ATTEMPTS", 1)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
