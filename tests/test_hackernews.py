import httpx
import pytest
import respx

from opportunity_radar.hackernews import HN_API_BASE, fetch_stories


@pytest.mark.asyncio
@respx.mock
async def test_fetch_stories(settings):
    respx.get(f"{HN_API_BASE}/askstories.json").mock(return_value=httpx.Response(200, json=[1, 2, 3, 4, 5, 6, 7]))
    respx.get(f"{HN_API_BASE}/item/1.json").mock(
        return_value=httpx.Response(
            200,
            json={
                "id": 1,
                "title": "Ask HN: Is there a tool for X?",
                "text": "Details",
                "by": "pg",
                "score": 42,
                "descendants": 7,
                "time": 1714564800,
            },
        )
    )
    respx.get(f"{HN_API_BASE}/item/2.json").mock(return_value=httpx.Response(200, json={"id": 2, "deleted": True}))
    respx.get(f"{HN_API_BASE}/item/3.json").mock(return_value=httpx.Response(500))
    respx.get(f"{HN_API_BASE}/item/4.json").mock(
        return_value=httpx.Response(200, json={"id": 4, "title": "Show HN", "url": "https://example.com"})
    )
    respx.get(f"{HN_API_BASE}/item/5.json").mock(return_value=httpx.Response(200, json={"id": 5, "dead": True}))
    item_6 = respx.get(f"{HN_API_BASE}/item/6.json").mock(return_value=httpx.Response(200, json={"id": 6}))

    async with httpx.AsyncClient() as client:
        items = await fetch_stories(client, "ask", settings)

    # hn_item_limit=5 in the test settings
    assert not item_6.called
    assert [i.external_id for i in items] == ["1", "4"]

    first = items[0]
    assert first.score == 42
    assert first.comment_count == 7
    assert first.author == "pg"
    assert first.url == "https://news.ycombinator.com/item?id=1"
    assert first.posted_at is not None
    assert items[1].url == "https://example.com"


@pytest.mark.asyncio
async def test_fetch_stories_unknown_type(settings):
    async with httpx.AsyncClient() as client:
        with pytest.raises(ValueError):
            await fetch_stories(client, "hottest", settings)


@pytest.mark.asyncio
@respx.mock
async def test_fetch_stories_list_failure_raises(settings):
    respx.get(f"{HN_API_BASE}/showstories.json").mock(return_value=httpx.Response(404))
    async with httpx.AsyncClient() as client:
        with pytest.raises(httpx.HTTPStatusError):
            await fetch_stories(client, "show", settings)
