"""Media persistence: idempotent bulk insert, filtered listing, counts.

Dedup is enforced by the unique constraint on ``media.media_url`` through a
single ``INSERT … ON CONFLICT DO NOTHING``, so concurrent workers that
discover the same media URL never race on a check-then-insert.
"""

import logging
from typing import Iterable

from sqlalchemy import case, desc, func, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from mediaharvest.config import settings
from mediaharvest.core.metrics import media_inserted_total
from mediaharvest.models.media import MEDIA_TYPE_IMAGE, MEDIA_TYPE_VIDEO, Media
from mediaharvest.schemas.media import CandidateMedia, MediaType

logger = logging.getLogger(__name__)

# Keeps bound parameters per statement well under SQLite's variable limit
INSERT_CHUNK_SIZE = 500


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Skip-on-conflict insert not supported for {dialect}")


def build_rows(source_url: str, items: Iterable[CandidateMedia]) -> list[dict]:
    """Rows for :func:`bulk_insert`; repeated media URLs collapse first-wins."""
    rows: list[dict] = []
    seen: set[str] = set()
    for item in items:
        if item.url in seen:
            continue
        seen.add(item.url)
        rows.append(
            {
                "source_url": source_url,
                "media_url": item.url,
                "type": item.type.value,
                "alt": item.alt if item.type is MediaType.IMAGE else None,
                "title": item.title,
            }
        )
    return rows


async def bulk_insert(
    db: AsyncSession, source_url: str, items: Iterable[CandidateMedia]
) -> int:
    """Insert media found on ``source_url``, skipping URLs already stored.

    Returns the number of rows actually inserted. Conflicts are not errors;
    any other database error propagates so the job can be retried. The
    caller owns the transaction.
    """
    rows = build_rows(source_url, items)
    if not rows:
        return 0

    insert = _insert_for(db)
    inserted = 0
    for start in range(0, len(rows), INSERT_CHUNK_SIZE):
        stmt = (
            insert(Media)
            .values(rows[start : start + INSERT_CHUNK_SIZE])
            .on_conflict_do_nothing(index_elements=[Media.media_url])
            .returning(Media.id)
        )
        result = await db.execute(stmt)
        inserted += len(result.fetchall())

    media_inserted_total.inc(inserted)
    logger.debug(
        f"Stored {inserted}/{len(rows)} media from {source_url} "
        f"({len(rows) - inserted} already known)"
    )
    return inserted


def clamp_page(page: int | None, limit: int | None) -> tuple[int, int]:
    page = max(1, page or 1)
    limit = limit or settings.DEFAULT_PAGE_SIZE
    limit = min(max(1, limit), settings.MAX_PAGE_SIZE)
    return page, limit


def _filtered(select_stmt, media_type: MediaType | str | None, search: str | None):
    if media_type:
        value = media_type.value if isinstance(media_type, MediaType) else media_type
        select_stmt = select_stmt.where(Media.type == value)
    if search:
        select_stmt = select_stmt.where(
            or_(
                Media.alt.icontains(search, autoescape=True),
                Media.title.icontains(search, autoescape=True),
                Media.source_url.icontains(search, autoescape=True),
                Media.media_url.icontains(search, autoescape=True),
            )
        )
    return select_stmt


async def query_media(
    db: AsyncSession,
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    media_type: MediaType | str | None = None,
    search: str | None = None,
) -> tuple[list[Media], int]:
    """Newest-first page of media plus the total matching count.

    ``limit`` is clamped into [1, MAX_PAGE_SIZE]; pagination is offset
    based (``skip = (page - 1) * limit``).
    """
    page, limit = clamp_page(page, limit)
    search = search.strip() if search else None

    count_query = _filtered(select(func.count()).select_from(Media), media_type, search)
    total = (await db.execute(count_query)).scalar() or 0

    query = (
        _filtered(select(Media), media_type, search)
        .order_by(desc(Media.created_at), desc(Media.id))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = list((await db.execute(query)).scalars().all())
    logger.debug(
        f"Media query page={page} limit={limit} type={media_type or 'all'} "
        f"search={search or 'none'}: {len(rows)} of {total}"
    )
    return rows, total


async def media_stats(db: AsyncSession) -> dict[str, int]:
    """Total, image and video counts in one aggregate round trip."""
    stmt = select(
        func.count(Media.id),
        func.count(case((Media.type == MEDIA_TYPE_IMAGE, 1))),
        func.count(case((Media.type == MEDIA_TYPE_VIDEO, 1))),
    )
    total, images, videos = (await db.execute(stmt)).one()
    return {"total": total or 0, "images": images or 0, "videos": videos or 0}
