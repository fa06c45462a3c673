"""Ingestion pipeline: pull due sources, classify, and store raw posts."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from .config import Settings
from .hackernews import fetch_stories
from .http_client import create_http_client
from .logging_config import get_logger
from .models import Classification, FeedItem, Source, SourcePlatform
from .progress import advance_fetch, complete_fetch, start_fetch_task
from .reddit_rss import fetch_subreddit
from .signals import initial_classification
from .store import AsyncStore

logger = get_logger(__name__)

Fetcher = Callable[[httpx.AsyncClient, str, Settings], Awaitable[list[FeedItem]]]

DEFAULT_FETCHERS: dict[SourcePlatform, Fetcher] = {
    SourcePlatform.REDDIT: fetch_subreddit,
    SourcePlatform.HACKERNEWS: fetch_stories,
}


@dataclass
class SourceResult:
    """Outcome of one source in an ingestion run."""

    source_id: int
    source: str
    status: str  # scraped, skipped, error
    posts_found: int = 0
    posts_new: int = 0
    signals: int = 0
    reason: str | None = None
    error: str | None = None


def is_due(source: Source, now: datetime | None = None) -> bool:
    """A source is due if it was never scraped or its frequency window has elapsed."""
    if source.last_scraped_at is None:
        return True
    now = now or datetime.now(UTC)
    last = source.last_scraped_at
    if last.tzinfo is None:
        last = last.replace(tzinfo=UTC)
    hours_since = (now - last).total_seconds() / 3600
    return hours_since >= source.scrape_frequency_hours


async def scrape_source(
    store: AsyncStore,
    client: httpx.AsyncClient,
    source: Source,
    settings: Settings,
    fetch: Fetcher,
    now: datetime | None = None,
) -> SourceResult:
    """Scrape a single source and store its new posts.

    The scrape log is always completed; on failure it carries the counts
    reached so far and the error message, and the error is re-raised.

    Args:
        store: Async storage
        client: HTTP client
        source: Source to scrape
        settings: Application settings
        fetch: Transport for the source's platform
        now: Timestamp recorded as last_scraped_at

    Returns:
        SourceResult for the scraped source
    """
    log_id = await store.start_scrape_log(source.id)
    found = 0
    new = 0
    signals = 0

    try:
        items = await fetch(client, source.identifier, settings)
        found = len(items)

        for item in items:
            classification = initial_classification(source, item.title, item.body)
            inserted = await store.insert_raw_post(source.id, item, classification)
            if inserted:
                new += 1
                if classification is Classification.PENDING:
                    signals += 1
    except Exception as e:
        await store.complete_scrape_log(log_id, posts_found=found, posts_new=new, error_message=str(e))
        raise

    await store.complete_scrape_log(log_id, posts_found=found, posts_new=new)
    await store.mark_source_scraped(source.id, now)

    logger.info(
        "source_scraped",
        source_id=source.id,
        source=source.display_name,
        found=found,
        new=new,
        signals=signals,
    )
    return SourceResult(
        source_id=source.id,
        source=source.display_name,
        status="scraped",
        posts_found=found,
        posts_new=new,
        signals=signals,
    )


async def run_ingest(
    store: AsyncStore,
    settings: Settings,
    fetchers: dict[SourcePlatform, Fetcher] | None = None,
    now: datetime | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[SourceResult]:
    """Scrape every active source that is due.

    Sources are processed one at a time with `source_delay_seconds` between
    scraped sources. A failing source is recorded and never aborts the run.

    Args:
        store: Async storage
        settings: Application settings
        fetchers: Transport per platform (defaults to Reddit RSS and Hacker News)
        now: Reference time for due checks
        client: HTTP client to reuse (a new one is created if not provided)

    Returns:
        One SourceResult per active source
    """
    fetchers = fetchers if fetchers is not None else DEFAULT_FETCHERS
    now = now or datetime.now(UTC)
    sources = [Source.from_row(row) for row in await store.list_sources(active_only=True)]
    logger.info("ingest_starting", sources=len(sources))

    if client is None:
        async with create_http_client(settings) as owned_client:
            return await _ingest_sources(store, owned_client, sources, settings, fetchers, now)
    return await _ingest_sources(store, client, sources, settings, fetchers, now)


async def _ingest_sources(
    store: AsyncStore,
    client: httpx.AsyncClient,
    sources: list[Source],
    settings: Settings,
    fetchers: dict[SourcePlatform, Fetcher],
    now: datetime,
) -> list[SourceResult]:
    results: list[SourceResult] = []
    start_fetch_task(len(sources))
    scraped_any = False

    for source in sources:
        if not is_due(source, now):
            results.append(
                SourceResult(source.id, source.display_name, "skipped", reason="Not due for scraping")
            )
            advance_fetch()
            continue

        fetch = fetchers.get(source.platform)
        if fetch is None:
            logger.info("platform_not_supported", source_id=source.id, platform=source.platform.value)
            results.append(
                SourceResult(
                    source.id,
                    source.display_name,
                    "skipped",
                    reason=f"Platform {source.platform.value} not yet implemented",
                )
            )
            advance_fetch()
            continue

        if scraped_any and settings.source_delay_seconds > 0:
            await asyncio.sleep(settings.source_delay_seconds)
        scraped_any = True

        try:
            results.append(await scrape_source(store, client, source, settings, fetch, now))
        except Exception as e:
            logger.error("source_scrape_failed", source_id=source.id, source=source.display_name, error=str(e))
            results.append(SourceResult(source.id, source.display_name, "error", error=str(e)))
        advance_fetch()

    complete_fetch()
    logger.info(
        "ingest_complete",
        scraped=sum(1 for r in results if r.status == "scraped"),
        skipped=sum(1 for r in results if r.status == "skipped"),
        errors=sum(1 for r in results if r.status == "error"),
        posts_new=sum(r.posts_new for r in results),
    )
    return results
