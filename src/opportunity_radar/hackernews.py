"""Hacker News ingestion via the public Firebase API.

Item requests are issued in fixed-size concurrent batches so a single
source never has more than one batch in flight.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import httpx

from .config import Settings
from .logging_config import get_logger
from .models import FeedItem
from .retry_policy import raise_for_feed_status, http_retry

logger = get_logger(__name__)

HN_API_BASE = "https://hacker-news.firebaseio.com/v0"
HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"

STORY_ENDPOINTS: dict[str, str] = {
    "ask": "askstories",
    "show": "showstories",
    "new": "newstories",
    "top": "topstories",
    "best": "beststories",
    "job": "jobstories",
}


@http_retry
async def _fetch_story_ids(client: httpx.AsyncClient, story_type: str) -> list[int]:
    endpoint = STORY_ENDPOINTS.get(story_type)
    if endpoint is None:
        raise ValueError(f"Unknown Hacker News story type: {story_type!r}")

    response = await client.get(f"{HN_API_BASE}/{endpoint}.json")
    raise_for_feed_status(response)
    ids = response.json()
    if not isinstance(ids, list):
        raise ValueError(f"Unexpected story list payload for {story_type!r}")
    return ids


async def _fetch_item(client: httpx.AsyncClient, item_id: int) -> dict | None:
    """Fetch a single item; failures are logged and dropped."""
    try:
        response = await client.get(f"{HN_API_BASE}/item/{item_id}.json")
        if response.status_code != 200:
            logger.debug("hn_item_unavailable", item_id=item_id, status=response.status_code)
            return None
        return response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("hn_item_fetch_failed", item_id=item_id, error=str(e))
        return None


def _to_feed_item(item: dict) -> FeedItem | None:
    if not item or item.get("deleted") or item.get("dead") or "id" not in item:
        return None

    posted_at = None
    if item.get("time"):
        posted_at = datetime.fromtimestamp(item["time"], tz=UTC)

    return FeedItem(
        external_id=str(item["id"]),
        title=item.get("title", ""),
        body=item.get("text", "") or "",
        author=item.get("by", "") or "",
        url=item.get("url") or HN_ITEM_URL.format(id=item["id"]),
        score=item.get("score", 0) or 0,
        comment_count=item.get("descendants", 0) or 0,
        posted_at=posted_at,
    )


async def fetch_stories(
    client: httpx.AsyncClient,
    story_type: str,
    settings: Settings,
) -> list[FeedItem]:
    """Fetch stories from a Hacker News story list.

    Args:
        client: HTTP client
        story_type: One of ask, show, new, top, best, job
        settings: Supplies hn_item_limit and hn_batch_size

    Returns:
        List of FeedItem objects

    Raises:
        httpx.HTTPStatusError: If the story list itself cannot be fetched
        ValueError: For unknown story types or malformed story lists
    """
    ids = (await _fetch_story_ids(client, story_type))[: settings.hn_item_limit]
    batch_size = settings.hn_batch_size

    items: list[FeedItem] = []
    for i in range(0, len(ids), batch_size):
        batch = ids[i : i + batch_size]
        results = await asyncio.gather(*(_fetch_item(client, item_id) for item_id in batch))
        for raw in results:
            item = _to_feed_item(raw)
            if item:
                items.append(item)

    logger.info("hn_fetched", story_type=story_type, requested=len(ids), stories=len(items))
    return items
