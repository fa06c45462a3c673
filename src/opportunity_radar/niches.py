"""Niche matching and priority boosts for analysis ordering.

Niches are keyword-tagged focus areas. Posts matching a niche are pulled
forward in the analysis queue by a multiplier derived from the highest
priority among the matched niches.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import aiosqlite
from pydantic import BaseModel, Field, ValidationError, field_validator

from .logging_config import get_logger
from .models import PRIORITY_ORDER, Priority

if TYPE_CHECKING:
    from .store import AsyncStore

logger = get_logger(__name__)

NICHE_BOOSTS: dict[Priority, float] = {
    Priority.HIGH: 2.0,
    Priority.MEDIUM: 1.5,
    Priority.LOW: 1.2,
}


def normalize_keywords(value: str | Iterable[str] | None) -> list[str]:
    """Normalize keywords given as a list or comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    elif not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError("keywords must be a list or a comma-separated string")
    return [str(k).strip() for k in value if str(k).strip()]


class Niche(BaseModel):
    """A keyword-tagged focus area."""

    id: int | None = None
    name: str = Field(..., min_length=1)
    keywords: list[str] = Field(..., min_length=1)
    priority: Priority
    is_active: bool = True
    description: str | None = None

    @field_validator("keywords", mode="before")
    @classmethod
    def parse_keywords(cls, v: str | list[str]) -> list[str]:
        """Accept keywords as an array or a comma-separated string."""
        return normalize_keywords(v)


@dataclass
class NicheMatch:
    """Result of matching text against a niche list."""

    matches: bool = False
    matched_names: list[str] = field(default_factory=list)
    highest_priority: Priority | None = None

    @property
    def boost(self) -> float:
        return niche_boost(self.highest_priority)


def niche_boost(priority: Priority | None) -> float:
    """Return the ranking multiplier for a priority (1.0 when unmatched)."""
    if priority is None:
        return 1.0
    return NICHE_BOOSTS[Priority(priority)]


def match_niches(text: str, niches: Iterable[Niche]) -> NicheMatch:
    """Match text against active niches.

    Args:
        text: Text to search (case-insensitive substring match)
        niches: Niches to consider; inactive ones are skipped

    Returns:
        NicheMatch with matched niche names and the highest priority
    """
    lower_text = (text or "").lower()
    result = NicheMatch()

    for niche in niches:
        if not niche.is_active:
            continue
        if not any(keyword.lower() in lower_text for keyword in niche.keywords):
            continue

        result.matched_names.append(niche.name)
        priority = Priority(niche.priority)
        if result.highest_priority is None or PRIORITY_ORDER.index(priority) < PRIORITY_ORDER.index(
            result.highest_priority
        ):
            result.highest_priority = priority

    result.matches = bool(result.matched_names)
    return result


DEFAULT_NICHES: tuple[Niche, ...] = (
    Niche(
        name="AI/Automation",
        keywords=["ai", "automation", "automate", "chatbot", "gpt", "llm", "machine learning", "workflow"],
        priority=Priority.HIGH,
    ),
    Niche(
        name="Developer Tools",
        keywords=["developer", "api", "sdk", "devtools", "cli", "coding", "github", "deployment"],
        priority=Priority.HIGH,
    ),
    Niche(
        name="Productivity",
        keywords=["productivity", "time tracking", "task management", "calendar", "scheduling", "notion", "workflow"],
        priority=Priority.HIGH,
    ),
    Niche(
        name="E-commerce",
        keywords=["ecommerce", "shopify", "inventory", "dropshipping", "amazon", "etsy", "online store"],
        priority=Priority.MEDIUM,
    ),
    Niche(
        name="Marketing",
        keywords=["marketing", "seo", "social media", "email marketing", "analytics", "content", "leads"],
        priority=Priority.MEDIUM,
    ),
    Niche(
        name="Finance/Accounting",
        keywords=["invoice", "accounting", "bookkeeping", "expense", "budget", "payment", "billing"],
        priority=Priority.MEDIUM,
    ),
    Niche(
        name="HR/Recruiting",
        keywords=["hiring", "recruiting", "hr", "onboarding", "payroll", "employee", "applicant"],
        priority=Priority.LOW,
    ),
    Niche(
        name="Healthcare",
        keywords=["healthcare", "medical", "patient", "clinic", "telehealth", "appointment"],
        priority=Priority.LOW,
    ),
)


async def load_niches(store: AsyncStore) -> list[Niche]:
    """Read the niche list from the store, falling back to the defaults.

    The fallback applies when the store cannot be read or holds no usable
    niche rows. Rows that fail validation are skipped. A store with only
    inactive niches is respected as-is.
    """
    try:
        rows = await store.list_niches()
    except aiosqlite.Error as e:
        logger.warning("niche_store_unavailable", error=str(e))
        return list(DEFAULT_NICHES)

    niches = []
    for row in rows:
        try:
            niches.append(Niche.model_validate(row))
        except ValidationError as e:
            logger.warning("niche_row_invalid", niche_id=row.get("id"), error=str(e)[:200])

    if not niches:
        logger.debug("niche_defaults_used", stored=len(rows))
        return list(DEFAULT_NICHES)
    return niches
