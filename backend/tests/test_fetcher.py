"""Tests for the page fetcher (httpx.MockTransport, no network)."""

import httpx
import pytest

from mediaharvest.config import Settings
from mediaharvest.services.fetcher import Fetcher, browser_headers, create_http_client

PAGE = '<html><body><img src="/cat.jpg" title="Cat"></body></html>'


def _fetcher(handler) -> Fetcher:
    config = Settings(SCRAPE_MAX_REDIRECTS=3)
    return Fetcher(create_http_client(config, transport=httpx.MockTransport(handler)))


class TestFetch:
    @pytest.mark.asyncio
    async def test_success_returns_html(self):
        fetcher = _fetcher(lambda request: httpx.Response(200, text=PAGE))
        try:
            assert await fetcher.fetch("https://ex.com/") == PAGE
        finally:
            await fetcher.aclose()

    @pytest.mark.asyncio
    async def test_sends_browser_headers(self):
        seen = {}

        def handler(request: httpx.Request):
            seen.update(request.headers)
            return httpx.Response(200, text=PAGE)

        fetcher = _fetcher(handler)
        try:
            await fetcher.fetch("https://ex.com/")
        finally:
            await fetcher.aclose()
        expected = browser_headers()
        assert seen["user-agent"] == expected["User-Agent"]
        assert seen["accept-language"] == expected["Accept-Language"]
        assert "text/html" in seen["accept"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [404, 500, 503])
    async def test_error_status_returns_none(self, status):
        fetcher = _fetcher(lambda request: httpx.Response(status, text="nope"))
        try:
            assert await fetcher.fetch("https://ex.com/") is None
        finally:
            await fetcher.aclose()

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        def handler(request: httpx.Request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://ex.com/new"})
            return httpx.Response(200, text=PAGE)

        fetcher = _fetcher(handler)
        try:
            assert await fetcher.fetch("https://ex.com/old") == PAGE
        finally:
            await fetcher.aclose()

    @pytest.mark.asyncio
    async def test_too_many_redirects_returns_none(self):
        def handler(request: httpx.Request):
            n = int(request.url.params.get("n", "0"))
            return httpx.Response(302, headers={"Location": f"https://ex.com/loop?n={n + 1}"})

        fetcher = _fetcher(handler)
        try:
            assert await fetcher.fetch("https://ex.com/loop") is None
        finally:
            await fetcher.aclose()

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self):
        def handler(request: httpx.Request):
            raise httpx.ReadTimeout("timed out", request=request)

        fetcher = _fetcher(handler)
        try:
            assert await fetcher.fetch("https://ex.com/") is None
        finally:
            await fetcher.aclose()

    @pytest.mark.asyncio
    async def test_connection_error_returns_none(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("refused", request=request)

        fetcher = _fetcher(handler)
        try:
            assert await fetcher.fetch("https://ex.com/") is None
        finally:
            await fetcher.aclose()


class TestScrape:
    @pytest.mark.asyncio
    async def test_scrape_extracts_media(self):
        fetcher = _fetcher(lambda request: httpx.Response(200, text=PAGE))
        try:
            media = await fetcher.scrape("https://ex.com/gallery")
        finally:
            await fetcher.aclose()
        assert [(m.url, m.title) for m in media] == [("https://ex.com/cat.jpg", "Cat")]

    @pytest.mark.asyncio
    async def test_scrape_page_without_media(self):
        fetcher = _fetcher(lambda request: httpx.Response(200, text="<p>hi</p>"))
        try:
            assert await fetcher.scrape("https://ex.com/") == []
        finally:
            await fetcher.aclose()

    @pytest.mark.asyncio
    async def test_scrape_unreachable_page(self):
        fetcher = _fetcher(lambda request: httpx.Response(404))
        try:
            assert await fetcher.scrape("https://ex.com/") is None
        finally:
            await fetcher.aclose()


class TestFromSettings:
    @pytest.mark.asyncio
    async def test_uses_given_config(self):
        config = Settings(SCRAPE_EXTRACTION_THREADS=2, SCRAPE_TIMEOUT_SECONDS=1.5)
        fetcher = Fetcher.from_settings(config)
        try:
            assert fetcher._executor._max_workers == 2
            assert fetcher._client.timeout.connect == 1.5
        finally:
            await fetcher.aclose()
