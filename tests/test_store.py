import aiosqlite
import pytest

from opportunity_radar.models import (
    AIProvider,
    Classification,
    OpportunityAnalysis,
    Priority,
    ResearchResult,
    ResearchType,
    SourcePlatform,
)
from opportunity_radar.store import AsyncStore, OpportunityNotFound

from helpers import analysis_payload, feed_item


@pytest.mark.asyncio
async def test_async_store_connect_and_init():
    """Connect, create the schema, close."""
    store = AsyncStore(":memory:")
    assert store._connection is None

    await store.connect()
    await store.init_db()

    async with store.connection() as conn:
        cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in await cursor.fetchall()}
    assert {"sources", "raw_posts", "niches", "opportunities", "research", "reactions", "scrape_logs"} <= tables

    await store.close()
    assert store._connection is None


@pytest.mark.asyncio
async def test_async_store_connection_context_manager():
    store = AsyncStore(":memory:")
    async with store.connection() as conn:
        assert isinstance(conn, aiosqlite.Connection)
    assert store._connection is not None
    await store.close()


@pytest.mark.asyncio
async def test_insert_raw_post_is_idempotent(store, reddit_source):
    item = feed_item("abc", "Is there a tool for this?", body="Original body", score=5)
    assert await store.insert_raw_post(reddit_source["id"], item, Classification.PENDING)

    # A second insert never overwrites the first row, even with new content
    changed = feed_item("abc", "Edited title", body="Edited body", score=500)
    assert not await store.insert_raw_post(reddit_source["id"], changed, Classification.REJECTED)
    assert await store.count_raw_posts() == 1

    (post,) = await store.get_unresolved_posts(limit=10)
    assert post.external_id == "abc"
    assert post.classification is Classification.PENDING
    assert post.title == "Is there a tool for this?"
    assert post.body == "Original body"
    assert post.score == 5


@pytest.mark.asyncio
async def test_unresolved_posts_ordered_by_score(store, reddit_source):
    sid = reddit_source["id"]
    await store.insert_raw_post(sid, feed_item("low", "a", score=1), Classification.PENDING)
    await store.insert_raw_post(sid, feed_item("high", "b", score=50), Classification.PENDING)
    await store.insert_raw_post(sid, feed_item("rejected", "c", score=99), Classification.REJECTED)

    posts = await store.get_unresolved_posts(limit=10)
    assert [p.external_id for p in posts] == ["high", "low"]


@pytest.mark.asyncio
async def test_resolve_post(store, reddit_source):
    await store.insert_raw_post(reddit_source["id"], feed_item("abc", "t"), Classification.PENDING)
    (post,) = await store.get_unresolved_posts()

    with pytest.raises(ValueError):
        await store.resolve_post(post.id, Classification.PENDING)

    await store.resolve_post(post.id, Classification.CONFIRMED)
    resolved = await store.get_raw_post(post.id)
    assert resolved.is_processed
    assert resolved.classification is Classification.CONFIRMED
    assert await store.get_unresolved_posts() == []


@pytest.mark.asyncio
async def test_processed_pending_post_is_rejected_by_schema(store, reddit_source):
    await store.insert_raw_post(reddit_source["id"], feed_item("abc", "t"), Classification.PENDING)
    async with store.connection() as conn:
        with pytest.raises(aiosqlite.IntegrityError):
            await conn.execute("UPDATE raw_posts SET is_processed = 1")


@pytest.mark.asyncio
async def test_create_opportunity_confirms_its_post(store, reddit_source):
    await store.insert_raw_post(reddit_source["id"], feed_item("abc", "t"), Classification.PENDING)
    (post,) = await store.get_unresolved_posts()

    analysis = OpportunityAnalysis.model_validate(analysis_payload())
    opportunity_id = await store.create_opportunity(analysis, raw_post_id=post.id, provider=AIProvider.CLAUDE)

    confirmed = await store.get_raw_post(post.id)
    assert confirmed.is_processed
    assert confirmed.classification is Classification.CONFIRMED
    assert (await store.get_opportunity(opportunity_id))["raw_post_id"] == post.id


@pytest.mark.asyncio
async def test_create_opportunity_rolls_back_when_confirm_fails(store, reddit_source):
    await store.insert_raw_post(reddit_source["id"], feed_item("abc", "t"), Classification.PENDING)
    (post,) = await store.get_unresolved_posts()
    async with store.connection() as conn:
        await conn.execute(
            """
            CREATE TRIGGER block_confirm BEFORE UPDATE ON raw_posts
            BEGIN SELECT RAISE(ABORT, 'confirm blocked'); END
            """
        )
        await conn.commit()

    analysis = OpportunityAnalysis.model_validate(analysis_payload())
    with pytest.raises(aiosqlite.Error):
        await store.create_opportunity(analysis, raw_post_id=post.id, provider=AIProvider.CLAUDE)

    _, total = await store.list_opportunities()
    assert total == 0
    (pending,) = await store.get_unresolved_posts()
    assert pending.id == post.id
    assert pending.classification is Classification.PENDING


@pytest.mark.asyncio
async def test_overall_score_is_mean_of_subscores(store):
    opportunity_id = await store.create_opportunity(
        OpportunityAnalysis.model_validate(analysis_payload()), provider=AIProvider.CLAUDE
    )
    opportunity = await store.get_opportunity(opportunity_id)
    # (8 + 6 + 9 + 5 + 7) / 5
    assert opportunity["overall_score"] == 7.0
    assert opportunity["status"] == "new"
    assert opportunity["ai_provider"] == "claude"
    assert opportunity["keywords"] == ["invoice", "freelance"]
    assert opportunity["raw_post"] is None


@pytest.mark.asyncio
async def test_manual_opportunity_defaults(store):
    opportunity = await store.create_manual_opportunity("Manual idea", "Something hurts")
    assert opportunity["overall_score"] == 5.0
    assert opportunity["status"] == "new"
    assert opportunity["priority"] == "medium"

    with pytest.raises(ValueError):
        await store.create_manual_opportunity("", "Something hurts")


@pytest.mark.asyncio
async def test_status_change_reactions(store):
    opportunity = await store.create_manual_opportunity("Idea", "Problem")
    oid = opportunity["id"]

    await store.update_opportunity(oid, {"status": "reviewing"})
    await store.update_opportunity(oid, {"status": "reviewing"})

    reactions = await store.list_reactions(oid)
    assert len(reactions) == 1
    assert reactions[0]["action_type"] == "status_change"
    assert reactions[0]["action_data"] == {"old_status": "new", "new_status": "reviewing"}


@pytest.mark.asyncio
async def test_star_and_note_reactions(store):
    opportunity = await store.create_manual_opportunity("Idea", "Problem")
    oid = opportunity["id"]

    updated = await store.update_opportunity(oid, {"is_starred": True, "notes": "Talk to Sam"})
    assert updated["is_starred"] is True
    assert updated["notes"] == "Talk to Sam"

    await store.update_opportunity(oid, {"is_starred": False})

    actions = [r["action_type"] for r in await store.list_reactions(oid)]
    assert actions == ["starred", "note", "unstarred"]


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(store):
    opportunity = await store.create_manual_opportunity("Idea", "Problem")
    with pytest.raises(ValueError):
        await store.update_opportunity(opportunity["id"], {"overall_score": 10})
    with pytest.raises(ValueError):
        await store.update_opportunity(opportunity["id"], {"status": "shipped"})
    with pytest.raises(ValueError):
        await store.update_opportunity(opportunity["id"], {"pain_intensity_score": 11})
    assert await store.list_reactions(opportunity["id"]) == []


@pytest.mark.asyncio
async def test_update_missing_opportunity(store):
    assert await store.update_opportunity(999, {"status": "reviewing"}) is None


@pytest.mark.asyncio
async def test_add_research_advances_new_to_researching(store):
    opportunity = await store.create_manual_opportunity("Idea", "Problem")
    oid = opportunity["id"]
    result = ResearchResult(title="Competitors", content="# Findings", sources=["https://example.com"])

    research = await store.add_research(oid, ResearchType.COMPETITOR_ANALYSIS, result, AIProvider.OPENAI)
    assert research["sources"] == ["https://example.com"]
    assert research["ai_generated"] is True

    detail = await store.get_opportunity(oid)
    assert detail["status"] == "researching"
    assert len(detail["research"]) == 1
    (reaction,) = detail["reactions"]
    assert reaction["action_type"] == "research_added"
    assert reaction["action_data"]["research_id"] == research["id"]
    assert reaction["action_data"]["provider"] == "openai"

    # Further research on a researching opportunity keeps it researching
    await store.add_research(oid, ResearchType.TECHNICAL_SPIKE, result)
    detail = await store.get_opportunity(oid)
    assert detail["status"] == "researching"
    assert [r["action_type"] for r in detail["reactions"]] == ["research_added", "research_added"]

    # A non-new status is left alone too
    await store.update_opportunity(oid, {"status": "validated"})
    await store.add_research(oid, ResearchType.MARKET_SIZE, result)
    detail = await store.get_opportunity(oid)
    assert detail["status"] == "validated"
    assert [r["research_type"] for r in detail["research"]] == [
        "market_size",
        "technical_spike",
        "competitor_analysis",
    ]


@pytest.mark.asyncio
async def test_add_research_unknown_opportunity(store):
    with pytest.raises(OpportunityNotFound):
        await store.add_research(42, ResearchType.MARKET_SIZE, ResearchResult(title="t", content="c"))


@pytest.mark.asyncio
async def test_delete_cascades_research_and_reactions(store):
    opportunity = await store.create_manual_opportunity("Idea", "Problem")
    oid = opportunity["id"]
    await store.add_research(oid, ResearchType.TECHNICAL_SPIKE, ResearchResult(title="t", content="c"))

    assert await store.delete_opportunity(oid)
    assert not await store.delete_opportunity(oid)
    assert await store.list_research(oid) == []
    assert await store.list_reactions(oid) == []


@pytest.mark.asyncio
async def test_list_opportunities_filters_and_pagination(store):
    for i in range(3):
        await store.create_opportunity(
            OpportunityAnalysis.model_validate(analysis_payload(title=f"Idea {i}", pain_intensity_score=2 + i))
        )
    manual = await store.create_manual_opportunity("Hand-made", "Typed by hand")
    await store.update_opportunity(manual["id"], {"is_starred": True})

    data, total = await store.list_opportunities(limit=2)
    assert total == 4
    assert len(data) == 2
    assert data[0]["title"] == "Idea 2"

    starred, total = await store.list_opportunities(starred=True)
    assert total == 1
    assert starred[0]["title"] == "Hand-made"

    found, _ = await store.list_opportunities(search="hand")
    assert [o["title"] for o in found] == ["Hand-made"]

    by_title, _ = await store.list_opportunities(sort_by="title", sort_order="asc")
    assert by_title[0]["title"] == "Hand-made"

    with pytest.raises(ValueError):
        await store.list_opportunities(sort_by="id; DROP TABLE opportunities")


@pytest.mark.asyncio
async def test_niche_crud_and_seed(store):
    await store.create_niche("Zeta", ["z"], Priority.LOW)
    alpha = await store.create_niche("Alpha", ["a"], Priority.HIGH, description="first")
    await store.create_niche("Beta", ["b"], Priority.HIGH)

    assert [n["name"] for n in await store.list_niches()] == ["Alpha", "Beta", "Zeta"]

    updated = await store.update_niche(alpha["id"], {"keywords": ["x", "y"], "is_active": False})
    assert updated["keywords"] == ["x", "y"]
    assert updated["is_active"] is False
    assert [n["name"] for n in await store.list_niches(active_only=True)] == ["Beta", "Zeta"]

    assert await store.delete_niche(alpha["id"])
    assert await store.get_niche(alpha["id"]) is None


@pytest.mark.asyncio
async def test_sources_and_scrape_logs(store):
    source = await store.create_source(SourcePlatform.HACKERNEWS, "ask", "Ask HN", scrape_frequency_hours=4)
    assert source["is_active"] is True
    assert source["last_scraped_at"] is None

    with pytest.raises(aiosqlite.IntegrityError):
        await store.create_source(SourcePlatform.HACKERNEWS, "ask", "Duplicate")

    updated = await store.update_source(source["id"], {"is_active": False})
    assert updated["is_active"] is False
    assert await store.list_sources(active_only=True) == []

    log_id = await store.start_scrape_log(source["id"])
    await store.complete_scrape_log(log_id, posts_found=3, posts_new=2, error_message="partial")
    (log,) = await store.get_scrape_logs()
    assert log["source_name"] == "Ask HN"
    assert log["posts_new"] == 2
    assert log["error_message"] == "partial"
    assert log["completed_at"] is not None


@pytest.mark.asyncio
async def test_seed_sources_skips_existing(store, reddit_source):
    inserted = await store.seed_sources(
        [
            {"platform": "reddit", "identifier": "SaaS", "display_name": "r/SaaS"},
            {"platform": "reddit", "identifier": "startups", "display_name": "r/startups"},
        ]
    )
    assert inserted == 1
    assert len(await store.list_sources()) == 2


@pytest.mark.asyncio
async def test_get_stats(store, reddit_source):
    await store.insert_raw_post(reddit_source["id"], feed_item("a", "t"), Classification.PENDING)
    await store.insert_raw_post(reddit_source["id"], feed_item("b", "t"), Classification.REJECTED)
    await store.create_opportunity(OpportunityAnalysis.model_validate(analysis_payload()))
    await store.create_manual_opportunity("Idea", "Problem")

    stats = await store.get_stats()
    assert stats["opportunities"]["total"] == 2
    assert stats["opportunities"]["new"] == 2
    assert stats["opportunities"]["average_score"] == 6.0
    assert stats["posts"] == {"total": 2, "unprocessed": 1}
    assert stats["breakdowns"]["priority"] == {"high": 1, "medium": 1}
