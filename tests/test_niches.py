import pytest
from pydantic import ValidationError

from opportunity_radar.models import Priority
from opportunity_radar.niches import (
    DEFAULT_NICHES,
    Niche,
    load_niches,
    match_niches,
    niche_boost,
    normalize_keywords,
)


def test_niche_boost_values():
    assert niche_boost(Priority.HIGH) == 2.0
    assert niche_boost(Priority.MEDIUM) == 1.5
    assert niche_boost(Priority.LOW) == 1.2
    assert niche_boost(None) == 1.0


def test_highest_priority_wins():
    niches = [
        Niche(name="Low", keywords=["invoice"], priority=Priority.LOW),
        Niche(name="High", keywords=["stripe"], priority=Priority.HIGH),
        Niche(name="Medium", keywords=["billing"], priority=Priority.MEDIUM),
    ]
    match = match_niches("Stripe billing and invoice pain", niches)

    assert match.matches
    assert match.matched_names == ["Low", "High", "Medium"]
    assert match.highest_priority is Priority.HIGH
    # Boosts are never summed
    assert match.boost == 2.0


def test_match_is_case_insensitive_substring():
    niches = [Niche(name="Dev", keywords=["API"], priority=Priority.MEDIUM)]
    assert match_niches("rapid prototyping", niches).matches
    assert not match_niches("nothing here", niches).matches


def test_inactive_niches_are_skipped():
    niches = [Niche(name="Off", keywords=["shopify"], priority=Priority.HIGH, is_active=False)]
    match = match_niches("shopify store", niches)
    assert not match.matches
    assert match.highest_priority is None
    assert match.boost == 1.0


def test_normalize_keywords():
    assert normalize_keywords(" ai, automation ,, gpt ") == ["ai", "automation", "gpt"]
    assert normalize_keywords(["seo", " ", "ads "]) == ["seo", "ads"]


def test_niche_requires_keywords():
    with pytest.raises(ValidationError):
        Niche(name="Empty", keywords=" , ", priority=Priority.LOW)


@pytest.mark.asyncio
async def test_load_niches_falls_back_when_empty(store):
    niches = await load_niches(store)
    assert [n.name for n in niches] == [n.name for n in DEFAULT_NICHES]


@pytest.mark.asyncio
async def test_load_niches_prefers_store(store):
    await store.create_niche("Legal", ["contract", "lawyer"], Priority.HIGH)
    niches = await load_niches(store)
    assert [n.name for n in niches] == ["Legal"]
    assert niches[0].keywords == ["contract", "lawyer"]


@pytest.mark.asyncio
async def test_load_niches_falls_back_on_storage_error(store):
    async with store.connection() as conn:
        await conn.execute("DROP TABLE niches")
    niches = await load_niches(store)
    assert len(niches) == len(DEFAULT_NICHES)


@pytest.mark.asyncio
async def test_update_niche_ignores_null_keywords(store):
    niche = await store.create_niche("Legal", ["contract"], Priority.HIGH)
    updated = await store.update_niche(niche["id"], {"keywords": None, "is_active": None})
    assert updated["keywords"] == ["contract"]
    assert updated["is_active"] is True


@pytest.mark.asyncio
async def test_load_niches_skips_corrupt_rows(store):
    broken = await store.create_niche("Broken", ["x"], Priority.HIGH)
    await store.create_niche("Legal", ["contract"], Priority.LOW)
    async with store.connection() as conn:
        await conn.execute("UPDATE niches SET keywords = 'null' WHERE id = ?", (broken["id"],))
        await conn.commit()

    niches = await load_niches(store)
    assert [n.name for n in niches] == ["Legal"]


@pytest.mark.asyncio
async def test_load_niches_uses_defaults_when_every_row_is_corrupt(store):
    await store.create_niche("Broken", ["x"], Priority.HIGH)
    async with store.connection() as conn:
        await conn.execute("UPDATE niches SET keywords = '42'")
        await conn.commit()

    niches = await load_niches(store)
    assert len(niches) == len(DEFAULT_NICHES)


def test_normalize_keywords_rejects_non_lists():
    assert normalize_keywords(None) == []
    with pytest.raises(ValueError):
        normalize_keywords(42)
