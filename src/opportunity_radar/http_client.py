"""httpx client used by the Reddit RSS and Hacker News transports."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from .config import Settings
from .logging_config import get_logger

logger = get_logger(__name__)

# Feeds answer quickly or not at all; a stuck read should fail the attempt
FEED_TIMEOUT = httpx.Timeout(20.0, connect=5.0)

FEED_HEADERS = {
    "Accept": "application/atom+xml,application/rss+xml,application/json;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def feed_limits(settings: Settings) -> httpx.Limits:
    """Pool sized to one Hacker News batch plus a spare connection."""
    size = settings.hn_batch_size + 1
    return httpx.Limits(max_connections=size, max_keepalive_connections=size)


@asynccontextmanager
async def create_http_client(settings: Settings) -> AsyncIterator[httpx.AsyncClient]:
    """Open a client for one ingestion run and close it afterwards.

    Example:
        async with create_http_client(settings) as client:
            items = await fetch_subreddit(client, "SaaS", settings)
    """
    client = httpx.AsyncClient(
        timeout=FEED_TIMEOUT,
        limits=feed_limits(settings),
        headers={**FEED_HEADERS, "User-Agent": settings.user_agent},
        follow_redirects=True,
    )
    logger.debug("http_client_opened", user_agent=settings.user_agent)
    try:
        yield client
    finally:
        await client.aclose()
