"""Page fetching with a shared keep-alive connection pool.

The ``httpx.AsyncClient`` is created once per process (API process, CLI run
or worker child) by :func:`create_http_client` and injected into
:class:`Fetcher`, so TCP/TLS handshakes are amortised across thousands of
jobs while tests can hand in a client backed by ``httpx.MockTransport``.
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor

import httpx

from mediaharvest.config import Settings, settings as default_settings
from mediaharvest.core.metrics import (
    fetch_duration_seconds,
    fetch_total,
    media_extracted_total,
)
from mediaharvest.schemas.media import CandidateMedia
from mediaharvest.services.extractor import extract_media

logger = logging.getLogger(__name__)

_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def browser_headers(config: Settings = default_settings) -> dict[str, str]:
    return {
        "User-Agent": config.SCRAPE_USER_AGENT,
        "Accept": _ACCEPT,
        "Accept-Language": config.SCRAPE_ACCEPT_LANGUAGE,
    }


def create_http_client(
    config: Settings = default_settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the pooled client used for every page fetch in this process."""
    kwargs = {}
    if transport is not None:
        kwargs["transport"] = transport
    else:
        kwargs["http2"] = True
    return httpx.AsyncClient(
        follow_redirects=True,
        max_redirects=config.SCRAPE_MAX_REDIRECTS,
        timeout=httpx.Timeout(config.SCRAPE_TIMEOUT_SECONDS),
        limits=httpx.Limits(
            max_connections=config.SCRAPE_MAX_CONNECTIONS,
            max_keepalive_connections=config.SCRAPE_MAX_CONNECTIONS,
            keepalive_expiry=30,
        ),
        headers=browser_headers(config),
        **kwargs,
    )


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 400


class Fetcher:
    """Fetch pages and hand their HTML to the extractor.

    ``fetch`` never raises: network errors, timeouts, redirect loops and
    non-2xx/3xx statuses are logged as warnings and reported as ``None``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        executor: ThreadPoolExecutor | None = None,
        config: Settings = default_settings,
    ):
        self._client = client
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=config.SCRAPE_EXTRACTION_THREADS,
            thread_name_prefix="extract",
        )

    @classmethod
    def from_settings(cls, config: Settings = default_settings) -> "Fetcher":
        return cls(create_http_client(config), config=config)

    async def fetch(self, url: str) -> str | None:
        logger.debug(f"Fetching {url}")
        start = time.monotonic()
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            fetch_total.labels(outcome="timeout").inc()
            logger.warning(f"Timed out fetching {url}: {e!r}")
            return None
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            # TooManyRedirects, connect/read errors, malformed URLs
            fetch_total.labels(outcome="network_error").inc()
            logger.warning(f"Failed to fetch {url}: {e!r}")
            return None
        finally:
            fetch_duration_seconds.observe(time.monotonic() - start)

        if not _is_success(response.status_code):
            fetch_total.labels(outcome="http_error").inc()
            logger.warning(f"Failed to fetch {url}: HTTP {response.status_code}")
            return None

        fetch_total.labels(outcome="ok").inc()
        return response.text

    async def extract(self, html: str, url: str) -> list[CandidateMedia]:
        """Run the (CPU-bound) extractor off the event loop."""
        loop = asyncio.get_running_loop()
        media = await loop.run_in_executor(self._executor, extract_media, html, url)
        for item in media:
            media_extracted_total.labels(type=item.type.value).inc()
        return media

    async def scrape(self, url: str) -> list[CandidateMedia] | None:
        """Fetch ``url`` and extract its media; None if no HTML was obtained."""
        html = await self.fetch(url)
        if html is None:
            return None
        media = await self.extract(html, url)
        images = sum(1 for m in media if m.type.value == "image")
        logger.debug(
            f"Scraped {url}: found {len(media)} media items "
            f"({images} images, {len(media) - images} videos)"
        )
        return media

    async def aclose(self) -> None:
        await self._client.aclose()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
