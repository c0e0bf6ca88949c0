import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediaharvest.core.exceptions import PageFetchError
from mediaharvest.services.fetcher import Fetcher
from mediaharvest.services.media_store import bulk_insert

logger = logging.getLogger(__name__)


async def scrape_and_store(
    url: str,
    fetcher: Fetcher,
    session_factory: async_sessionmaker[AsyncSession],
) -> int:
    """One job: fetch ``url``, extract its media, store what's new.

    A page that could not be fetched at all raises :class:`PageFetchError`
    so the job is retried; a page that was fetched but holds no media is a
    success. Returns the number of newly stored media items.
    """
    media = await fetcher.scrape(url)
    if media is None:
        raise PageFetchError(url)
    if not media:
        logger.info(f"No media found on {url}")
        return 0

    async with session_factory() as db:
        inserted = await bulk_insert(db, url, media)
        await db.commit()

    logger.info(f"Scraped {len(media)} items from {url} ({inserted} new)")
    return inserted
