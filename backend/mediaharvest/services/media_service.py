import logging
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from mediaharvest.schemas.media import (
    FailedJob,
    MediaListResponse,
    MediaOut,
    MediaQuery,
    PaginationMeta,
    ScrapeSubmitResponse,
    StatsResponse,
)
from mediaharvest.services.job_queue import JobQueue
from mediaharvest.services.media_store import clamp_page, media_stats, query_media

logger = logging.getLogger(__name__)


class MediaService:
    """Entry point used by the HTTP API and the CLI."""

    def __init__(self, queue: JobQueue):
        self.queue = queue

    async def submit_urls(self, urls: Sequence[str]) -> ScrapeSubmitResponse:
        """Queue one job per URL and return immediately.

        Repeated URLs are queued as separate jobs; the media dedup makes the
        extra work harmless.
        """
        job_count = await self.queue.submit(list(urls))
        logger.info(f"Queued {job_count} scrape job(s) on the {self.queue.backend} backend")
        return ScrapeSubmitResponse(message="URLs queued for scraping", job_count=job_count)

    async def list_media(self, db: AsyncSession, query: MediaQuery) -> MediaListResponse:
        page, limit = clamp_page(query.page, query.limit)
        rows, total = await query_media(
            db, page=page, limit=limit, media_type=query.type, search=query.search
        )
        return MediaListResponse(
            data=[MediaOut.model_validate(row) for row in rows],
            meta=PaginationMeta.build(total, page, limit),
        )

    async def get_stats(self, db: AsyncSession) -> StatsResponse:
        return StatsResponse(**await media_stats(db))

    async def recent_failures(self) -> list[FailedJob]:
        return await self.queue.recent_failures()
