"""CLI tool for MediaHarvest — scrape pages for media and browse the results.

Usage:
    python -m mediaharvest.cli extract https://example.com
    python -m mediaharvest.cli scrape https://example.com https://example.org
    python -m mediaharvest.cli scrape --file urls.txt --concurrency 20
    python -m mediaharvest.cli submit https://example.com
    python -m mediaharvest.cli media --type image --search cat --page 2
    python -m mediaharvest.cli stats
    python -m mediaharvest.cli failures
"""

import argparse
import asyncio
import json
import logging
import sys

from pydantic import ValidationError

from mediaharvest.config import settings


def _setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _read_urls(args) -> list[str]:
    """Positional URLs plus one URL per line of --file, validated."""
    from mediaharvest.schemas.media import ScrapeUrlsRequest

    urls = list(args.urls or [])
    if getattr(args, "file", None):
        with open(args.file, encoding="utf-8") as f:
            urls.extend(line.strip() for line in f if line.strip() and not line.startswith("#"))
    try:
        return ScrapeUrlsRequest(urls=urls).urls
    except ValidationError as e:
        print(f"[ERROR] {e.errors()[0]['msg']}", file=sys.stderr)
        sys.exit(2)


def _print(payload, output: str):
    if output == "json":
        print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))
        return
    if isinstance(payload, dict) and "data" in payload:
        for item in payload["data"]:
            print(f"[{item['type']}] {item['title']}\n    {item['media_url']}\n    from {item['source_url']}")
        meta = payload["meta"]
        print(
            f"\nPage {meta['page']}/{meta['total_pages']} ({meta['total']} total)",
            file=sys.stderr,
        )
    elif isinstance(payload, dict):
        for key, value in payload.items():
            print(f"{key}: {value}")
    else:
        for item in payload:
            print("  ".join(str(v) for v in item.values()))


async def _cmd_extract(args):
    """Fetch one page and print its media without storing anything."""
    from mediaharvest.services.fetcher import Fetcher

    fetcher = Fetcher.from_settings()
    try:
        media = await fetcher.scrape(args.url)
    finally:
        await fetcher.aclose()

    if media is None:
        print(f"[ERROR] Could not fetch {args.url}", file=sys.stderr)
        sys.exit(1)
    _print([m.model_dump(mode="json") for m in media], args.output)
    print(f"\nFound {len(media)} media items", file=sys.stderr)


async def _cmd_scrape(args):
    """Scrape URLs with the in-process worker pool and store the results."""
    from mediaharvest.core.database import async_session, engine, init_db
    from mediaharvest.services.fetcher import Fetcher
    from mediaharvest.services.job_queue import WorkerPool
    from mediaharvest.services.pipeline import scrape_and_store

    urls = _read_urls(args)
    await init_db()
    fetcher = Fetcher.from_settings()
    inserted = 0

    async def handle(url: str) -> int:
        nonlocal inserted
        count = await scrape_and_store(url, fetcher, async_session)
        inserted += count
        return count

    try:
        async with WorkerPool(handle, concurrency=args.concurrency) as pool:
            await pool.submit(urls)
            await pool.join()
            failures = await pool.recent_failures()
            summary = {
                "jobs": len(urls),
                "completed": pool.completed,
                "failed": pool.failed,
                "media_inserted": inserted,
                "peak_in_flight": pool.peak_in_flight,
            }
    finally:
        await fetcher.aclose()
        await engine.dispose()

    _print(summary, args.output)
    for failure in failures:
        print(f"[FAILED] {failure.url}: {failure.error}", file=sys.stderr)


async def _cmd_submit(args):
    """Queue URLs for the Celery scrape workers."""
    from mediaharvest.services.job_queue import CeleryJobQueue
    from mediaharvest.services.media_service import MediaService

    result = await MediaService(CeleryJobQueue()).submit_urls(_read_urls(args))
    _print(result.model_dump(), args.output)


async def _cmd_media(args):
    from mediaharvest.core.database import async_session, engine, init_db
    from mediaharvest.schemas.media import MediaQuery
    from mediaharvest.services.job_queue import CeleryJobQueue
    from mediaharvest.services.media_service import MediaService

    try:
        query = MediaQuery(page=args.page, limit=args.limit, type=args.type, search=args.search)
    except ValidationError as e:
        print(f"[ERROR] {e.errors()[0]['msg']}", file=sys.stderr)
        sys.exit(2)

    await init_db()
    try:
        async with async_session() as db:
            result = await MediaService(CeleryJobQueue()).list_media(db, query)
    finally:
        await engine.dispose()
    _print(result.model_dump(mode="json"), args.output)


async def _cmd_stats(args):
    from mediaharvest.core.database import async_session, engine, init_db
    from mediaharvest.services.job_queue import CeleryJobQueue
    from mediaharvest.services.media_service import MediaService

    await init_db()
    try:
        async with async_session() as db:
            result = await MediaService(CeleryJobQueue()).get_stats(db)
    finally:
        await engine.dispose()
    _print(result.model_dump(), args.output)


async def _cmd_failures(args):
    """Show jobs the Celery workers gave up on."""
    from mediaharvest.core.redis import redis_client
    from mediaharvest.services.job_queue import CeleryJobQueue

    try:
        failures = await CeleryJobQueue().recent_failures()
    finally:
        await redis_client.close()
    _print([f.model_dump(mode="json") for f in failures], args.output)
    print(f"\n{len(failures)} failed job(s)", file=sys.stderr)


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="mediaharvest",
        description="MediaHarvest CLI — extract, scrape and browse media from web pages",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "-o", "--output", default="json",
        choices=["json", "text"],
        help="Output format (default: json)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # --- extract ---
    extract_parser = subparsers.add_parser("extract", help="Print the media found on one page")
    extract_parser.add_argument("url", help="Page URL")

    # --- scrape ---
    scrape_parser = subparsers.add_parser("scrape", help="Scrape pages in-process and store their media")
    scrape_parser.add_argument("urls", nargs="*", help="Page URLs")
    scrape_parser.add_argument("--file", default=None, help="File with one URL per line")
    scrape_parser.add_argument(
        "--concurrency", type=int, default=settings.SCRAPE_CONCURRENCY,
        help=f"Max pages in flight (default: {settings.SCRAPE_CONCURRENCY})",
    )

    # --- submit ---
    submit_parser = subparsers.add_parser("submit", help="Queue pages for the Celery workers")
    submit_parser.add_argument("urls", nargs="*", help="Page URLs")
    submit_parser.add_argument("--file", default=None, help="File with one URL per line")

    # --- media ---
    media_parser = subparsers.add_parser("media", help="List stored media")
    media_parser.add_argument("--page", type=int, default=1)
    media_parser.add_argument("--limit", type=int, default=settings.DEFAULT_PAGE_SIZE)
    media_parser.add_argument("--type", default=None, choices=["image", "video"])
    media_parser.add_argument("--search", default=None, help="Substring of alt, title or URLs")

    # --- stats / failures ---
    subparsers.add_parser("stats", help="Show media counts")
    subparsers.add_parser("failures", help="Show recently failed Celery jobs")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _setup_logging(args.verbose)

    commands = {
        "extract": _cmd_extract,
        "scrape": _cmd_scrape,
        "submit": _cmd_submit,
        "media": _cmd_media,
        "stats": _cmd_stats,
        "failures": _cmd_failures,
    }
    asyncio.run(commands[args.command](args))


if __name__ == "__main__":
    main()
