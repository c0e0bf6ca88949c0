import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mediaharvest.api.deps import get_media_service
from mediaharvest.core.database import get_db
from mediaharvest.schemas.media import (
    FailedJob,
    MediaListResponse,
    MediaQuery,
    ScrapeSubmitResponse,
    ScrapeUrlsRequest,
    StatsResponse,
)
from mediaharvest.services.media_service import MediaService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/scrape",
    response_model=ScrapeSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue URLs for scraping",
    description="Queue one scrape job per URL and return immediately. Each page is "
    "fetched, its images, videos and video embeds extracted, and new media stored. "
    "Duplicate URLs are queued as separate jobs.",
)
async def submit_scrape(
    request: ScrapeUrlsRequest,
    service: MediaService = Depends(get_media_service),
):
    return await service.submit_urls(request.urls)


@router.get(
    "/media",
    response_model=MediaListResponse,
    summary="List stored media",
    description="Newest-first page of stored media. Filter by exact type and by a "
    "case-insensitive substring matched against alt text, title, page URL and "
    "media URL.",
)
async def list_media(
    query: Annotated[MediaQuery, Query()],
    db: AsyncSession = Depends(get_db),
    service: MediaService = Depends(get_media_service),
):
    return await service.list_media(db, query)


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Media counts",
    description="Total number of stored media items and the image/video split.",
)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    service: MediaService = Depends(get_media_service),
):
    return await service.get_stats(db)


@router.get(
    "/jobs/failures",
    response_model=list[FailedJob],
    summary="Recent failed jobs",
    description="Most recent scrape jobs that failed after exhausting their retries, "
    "newest first.",
)
async def list_failed_jobs(service: MediaService = Depends(get_media_service)):
    return await service.recent_failures()
