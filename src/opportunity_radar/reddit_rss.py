"""Reddit ingestion using public RSS feeds (no API approval required).

Limitations:
- Feeds return roughly 25 entries
- Vote and comment counts are not available, both are stored as 0
"""

from __future__ import annotations

import calendar
import html
import re
from datetime import UTC, datetime

import feedparser
import httpx
from bs4 import BeautifulSoup

from .config import Settings
from .logging_config import get_logger
from .models import FeedItem
from .retry_policy import raise_for_feed_status, http_retry

logger = get_logger(__name__)

REDDIT_BASE = "https://www.reddit.com"

# Bodies longer than this are truncated
MAX_BODY_CHARS = 5000


def _extract_post_id(entry_id: str, link: str) -> str:
    """Extract the Reddit post ID from an Atom entry id or permalink."""
    match = re.search(r"t3_([a-z0-9]+)", entry_id or "", re.IGNORECASE)
    if match:
        return match.group(1)
    # URLs look like: https://www.reddit.com/r/subreddit/comments/abc123/title/
    match = re.search(r"/comments/([a-z0-9]+)/", link or "")
    if match:
        return match.group(1)
    return entry_id or ""


def _extract_author(entry: dict) -> str:
    author = entry.get("author", "") or ""
    if author.startswith("/u/"):
        author = author[3:]
    return author or "[unknown]"


def _clean_html(text: str) -> str:
    """Strip tags and entities, collapse whitespace, cap length."""
    text = html.unescape(text)
    soup = BeautifulSoup(text, "lxml")
    cleaned = re.sub(r"\s+", " ", soup.get_text(separator=" ")).strip()
    return cleaned[:MAX_BODY_CHARS]


def _parse_timestamp(entry: dict) -> datetime | None:
    parsed = entry.get("updated_parsed") or entry.get("published_parsed")
    if not parsed:
        return None
    return datetime.fromtimestamp(calendar.timegm(parsed), tz=UTC)


def _parse_rss_entry(entry: dict) -> FeedItem | None:
    """Parse an RSS/Atom feed entry into a FeedItem."""
    link = entry.get("link", "")
    external_id = _extract_post_id(entry.get("id", ""), link)
    if not external_id:
        return None

    body = ""
    if entry.get("content"):
        body = entry["content"][0].get("value", "")
    elif "summary" in entry:
        body = entry.get("summary", "")

    return FeedItem(
        external_id=external_id,
        title=html.unescape(entry.get("title", "")),
        body=_clean_html(body),
        author=_extract_author(entry),
        url=link,
        score=0,
        comment_count=0,
        posted_at=_parse_timestamp(entry),
    )


def parse_feed(text: str) -> list[FeedItem]:
    """Parse a feed document into FeedItems, skipping unusable entries.

    Raises:
        ValueError: If the document is not a parseable feed
    """
    feed = feedparser.parse(text)
    if feed.bozo and not feed.entries:
        raise ValueError(f"Malformed feed: {feed.get('bozo_exception', 'unknown error')}")

    items = []
    for entry in feed.entries:
        item = _parse_rss_entry(entry)
        if item:
            items.append(item)
    return items


@http_retry
async def fetch_subreddit(
    client: httpx.AsyncClient,
    subreddit: str,
    settings: Settings,
) -> list[FeedItem]:
    """Fetch the newest posts of a subreddit from its RSS feed.

    Args:
        client: HTTP client
        subreddit: Subreddit name (without r/)
        settings: Application settings (unused, part of the transport contract)

    Returns:
        List of FeedItem objects

    Raises:
        httpx.HTTPStatusError: For non-retryable error responses
        ValueError: For malformed feeds
    """
    url = f"{REDDIT_BASE}/r/{subreddit}/new.rss"
    logger.debug("fetching_rss", url=url)

    response = await client.get(url)
    raise_for_feed_status(response)

    items = parse_feed(response.text)
    logger.info("rss_fetched", subreddit=subreddit, posts=len(items))
    return items
