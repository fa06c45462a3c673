from datetime import UTC, datetime, timedelta

import aiosqlite
import pytest

from opportunity_radar.ingest import is_due, run_ingest
from opportunity_radar.models import Classification, Source, SourcePlatform

from helpers import feed_item

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

THREE_ITEMS = [
    feed_item("a", "Is there a tool for invoices?"),
    feed_item("b", "My weekend hike"),
    feed_item("c", "Frustrated with my CRM", body="It never syncs"),
]


def _fetcher(items):
    calls = []

    async def fetch(client, identifier, settings):
        calls.append(identifier)
        return list(items)

    fetch.calls = calls
    return fetch


def _source(last_scraped_at=None, hours=6):
    return Source(
        id=1,
        platform=SourcePlatform.REDDIT,
        identifier="SaaS",
        display_name="r/SaaS",
        scrape_frequency_hours=hours,
        is_active=True,
        last_scraped_at=last_scraped_at,
    )


def test_is_due():
    assert is_due(_source(), NOW)
    assert is_due(_source(NOW - timedelta(hours=6)), NOW)
    assert not is_due(_source(NOW - timedelta(hours=5, minutes=59)), NOW)


@pytest.mark.asyncio
async def test_scrape_classifies_items(store, settings, reddit_source):
    fetch = _fetcher(THREE_ITEMS)
    (result,) = await run_ingest(store, settings, fetchers={SourcePlatform.REDDIT: fetch}, now=NOW)

    assert result.status == "scraped"
    assert result.posts_found == 3
    assert result.posts_new == 3
    assert result.signals == 2
    assert fetch.calls == ["SaaS"]

    async with store.connection() as conn:
        cursor = await conn.execute("SELECT external_id, is_processed, is_opportunity FROM raw_posts ORDER BY external_id")
        rows = [tuple(r) for r in await cursor.fetchall()]
    assert rows == [("a", 0, None), ("b", 0, 0), ("c", 0, None)]

    source = await store.get_source(reddit_source["id"])
    assert source["last_scraped_at"] == NOW.isoformat()

    (log,) = await store.get_scrape_logs()
    assert log["posts_found"] == 3
    assert log["posts_new"] == 3
    assert log["error_message"] is None


@pytest.mark.asyncio
async def test_ingest_is_idempotent(store, settings, reddit_source):
    await run_ingest(store, settings, fetchers={SourcePlatform.REDDIT: _fetcher(THREE_ITEMS)}, now=NOW)

    # Same ids come back edited and upvoted
    edited = [feed_item(i.external_id, f"Edited {i.title}", body="Edited body", score=999) for i in THREE_ITEMS]
    (second,) = await run_ingest(
        store,
        settings,
        fetchers={SourcePlatform.REDDIT: _fetcher(edited)},
        now=NOW + timedelta(hours=7),
    )

    assert second.status == "scraped"
    assert second.posts_found == 3
    assert second.posts_new == 0
    assert await store.count_raw_posts() == 3

    async with store.connection() as conn:
        cursor = await conn.execute("SELECT external_id, title, body, score FROM raw_posts ORDER BY external_id")
        rows = [tuple(r) for r in await cursor.fetchall()]
    assert rows == [(i.external_id, i.title, i.body, i.score) for i in THREE_ITEMS]


@pytest.mark.asyncio
async def test_source_not_due_is_skipped(store, settings, reddit_source):
    fetch = _fetcher(THREE_ITEMS)
    await run_ingest(store, settings, fetchers={SourcePlatform.REDDIT: fetch}, now=NOW)
    (result,) = await run_ingest(store, settings, fetchers={SourcePlatform.REDDIT: fetch}, now=NOW + timedelta(hours=1))

    assert result.status == "skipped"
    assert fetch.calls == ["SaaS"]


@pytest.mark.asyncio
async def test_unsupported_platform_is_skipped(store, settings):
    await store.create_source(SourcePlatform.PRODUCTHUNT, "today", "Product Hunt")
    (result,) = await run_ingest(store, settings, fetchers={}, now=NOW)
    assert result.status == "skipped"
    assert "not yet implemented" in result.reason


@pytest.mark.asyncio
async def test_failing_source_does_not_abort_run(store, settings, reddit_source):
    hn = await store.create_source(SourcePlatform.HACKERNEWS, "ask", "Ask HN")

    async def broken(client, identifier, settings):
        raise RuntimeError("feed exploded")

    results = await run_ingest(
        store,
        settings,
        fetchers={SourcePlatform.REDDIT: _fetcher(THREE_ITEMS), SourcePlatform.HACKERNEWS: broken},
        now=NOW,
    )
    by_source = {r.source_id: r for r in results}

    assert by_source[hn["id"]].status == "error"
    assert by_source[hn["id"]].error == "feed exploded"
    assert by_source[reddit_source["id"]].status == "scraped"

    # The failed source keeps its previous scrape time and logs the error
    assert (await store.get_source(hn["id"]))["last_scraped_at"] is None
    (log,) = await store.get_scrape_logs(source_id=hn["id"])
    assert log["error_message"] == "feed exploded"
    assert log["completed_at"] is not None


@pytest.mark.asyncio
async def test_hn_ask_items_are_all_pending(store, settings):
    await store.create_source(SourcePlatform.HACKERNEWS, "ask", "Ask HN")
    await run_ingest(
        store,
        settings,
        fetchers={SourcePlatform.HACKERNEWS: _fetcher([feed_item("1", "Quiet title"), feed_item("2", "Another")])},
        now=NOW,
    )
    posts = await store.get_unresolved_posts()
    assert len(posts) == 2
    assert all(p.classification is Classification.PENDING for p in posts)


@pytest.mark.asyncio
async def test_insert_failure_mid_source_records_partial_log(store, settings, reddit_source, monkeypatch):
    original = store.insert_raw_post
    calls = []

    async def flaky_insert(source_id, item, classification):
        calls.append(item.external_id)
        if len(calls) == 2:
            raise aiosqlite.OperationalError("database is locked")
        return await original(source_id, item, classification)

    monkeypatch.setattr(store, "insert_raw_post", flaky_insert)
    (result,) = await run_ingest(store, settings, fetchers={SourcePlatform.REDDIT: _fetcher(THREE_ITEMS)}, now=NOW)

    assert result.status == "error"
    assert result.error == "database is locked"
    assert calls == ["a", "b"]
    assert await store.count_raw_posts() == 1

    (log,) = await store.get_scrape_logs(source_id=reddit_source["id"])
    assert log["posts_found"] == 3
    assert log["posts_new"] == 1
    assert log["error_message"] == "database is locked"
    assert log["completed_at"] is not None
    assert (await store.get_source(reddit_source["id"]))["last_scraped_at"] is None
