import math
from datetime import datetime
from enum import Enum
from urllib.parse import urlparse
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from mediaharvest.config import settings


def _normalize_url(url: str) -> str:
    """Prepend https:// if no scheme is present."""
    url = url.strip()
    if url.startswith("//"):
        return f"https:{url}"
    if url and "://" not in url:
        return f"https://{url}"
    return url


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class CandidateMedia(BaseModel):
    """One media reference found on a page, before dedup/persistence."""

    url: str
    type: MediaType
    alt: str | None = None  # images only
    title: str


class ScrapeUrlsRequest(BaseModel):
    urls: list[str] = Field(..., min_length=1)

    @field_validator("urls", mode="before")
    @classmethod
    def _validate_urls(cls, v):
        if not isinstance(v, list):
            raise ValueError("urls must be a list")
        cleaned = []
        for raw in v:
            if not isinstance(raw, str):
                raise ValueError("each url must be a string")
            url = _normalize_url(raw)
            parsed = urlparse(url)
            if parsed.scheme not in ("http", "https") or not parsed.hostname:
                raise ValueError(f"invalid URL: {raw!r}")
            cleaned.append(url)
        return cleaned


class ScrapeSubmitResponse(BaseModel):
    message: str
    job_count: int


class MediaQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    type: MediaType | None = None
    search: str | None = None

    @field_validator("search", mode="before")
    @classmethod
    def _strip_search(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class MediaOut(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    source_url: str
    media_url: str
    type: MediaType
    alt: str | None = None
    title: str
    created_at: datetime


class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PaginationMeta":
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


class MediaListResponse(BaseModel):
    data: list[MediaOut]
    meta: PaginationMeta


class StatsResponse(BaseModel):
    total: int
    images: int
    videos: int


class FailedJob(BaseModel):
    url: str
    error: str
    attempts: int
    failed_at: datetime
