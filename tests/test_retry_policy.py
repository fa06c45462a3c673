import httpx
import pytest
import respx

from opportunity_radar.reddit_rss import fetch_subreddit
from opportunity_radar.retry_policy import (
    RateLimitError,
    TransientHTTPError,
    raise_for_feed_status,
    retry_after_seconds,
)

EMPTY_FEED = '<?xml version="1.0"?><feed xmlns="http://www.w3.org/2005/Atom"><title>r/SaaS</title></feed>'


def _response(status, **headers):
    return httpx.Response(status, headers=headers, request=httpx.Request("GET", "https://example.com"))


def test_raise_for_feed_status():
    raise_for_feed_status(_response(200))

    with pytest.raises(RateLimitError) as exc_info:
        raise_for_feed_status(_response(429, **{"Retry-After": "7"}))
    assert exc_info.value.retry_after == 7.0

    with pytest.raises(TransientHTTPError):
        raise_for_feed_status(_response(503))

    with pytest.raises(httpx.HTTPStatusError):
        raise_for_feed_status(_response(403))


def test_retry_after_seconds():
    assert retry_after_seconds(_response(429)) is None
    assert retry_after_seconds(_response(429, **{"Retry-After": "soon"})) is None
    # Dates in the past never produce a negative wait
    assert retry_after_seconds(_response(429, **{"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})) == 0.0


@pytest.mark.asyncio
@respx.mock
async def test_rate_limited_feed_is_retried(settings):
    route = respx.get("https://www.reddit.com/r/SaaS/new.rss").mock(
        side_effect=[
            httpx.Response(429, headers={"Retry-After": "0"}),
            httpx.Response(200, text=EMPTY_FEED),
        ]
    )
    async with httpx.AsyncClient() as client:
        items = await fetch_subreddit(client, "SaaS", settings)

    assert items == []
    assert route.call_count == 2
