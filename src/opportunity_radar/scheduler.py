"""Analysis scheduler: pick pending posts, rerank by niche, dispatch to providers."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field

from .analyze import analyze_post
from .logging_config import get_logger
from .models import AIProvider, Classification, RawPost
from .niches import Niche, load_niches, match_niches
from .progress import advance_analyze, complete_analyze, start_analyze_task
from .providers import LLMClient
from .store import AsyncStore

logger = get_logger(__name__)


@dataclass
class RankedPost:
    """A pending post with its niche match."""

    post: RawPost
    boost: float
    niches: list[str] = field(default_factory=list)


@dataclass
class PostOutcome:
    """Per-post detail of an analysis run."""

    post_id: int
    status: str  # opportunity, rejected, error
    provider: str
    niches: list[str] = field(default_factory=list)
    boost: float = 1.0
    opportunity_id: int | None = None
    error: str | None = None


@dataclass
class AnalysisSummary:
    """Result from running the analysis scheduler."""

    processed: int = 0
    opportunities_found: int = 0
    niche_matches: int = 0
    errors: int = 0
    details: list[PostOutcome] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def rank_posts(posts: Iterable[RawPost], niches: list[Niche], limit: int) -> list[RankedPost]:
    """Order posts by niche boost, then popularity, and keep the first `limit`.

    The sort is stable, so equal keys keep their incoming order.
    """
    ranked = []
    for post in posts:
        match = match_niches(f"{post.title} {post.body}", niches)
        ranked.append(RankedPost(post=post, boost=match.boost, niches=match.matched_names))
    ranked.sort(key=lambda r: (r.boost, r.post.score), reverse=True)
    return ranked[:limit]


def provider_for(index: int, provider: AIProvider) -> AIProvider:
    """Designated provider on even positions, its counterpart on odd ones."""
    return provider if index % 2 == 0 else provider.counterpart


async def run_analysis(
    store: AsyncStore,
    clients: dict[AIProvider, LLMClient],
    limit: int = 10,
    provider: AIProvider = AIProvider.CLAUDE,
    delay: float = 1.0,
    overfetch: int = 3,
) -> AnalysisSummary:
    """Analyze the most promising pending posts one at a time.

    A post with an analysis becomes an opportunity and is resolved as
    CONFIRMED; a post the model declines is resolved as REJECTED. A failure
    leaves the post untouched so a later run picks it up again.

    Args:
        store: Async storage
        clients: Configured provider clients (must include `provider`)
        limit: Maximum posts analyzed
        provider: Designated provider for even positions
        delay: Seconds to wait after every post
        overfetch: Multiple of `limit` fetched before reranking

    Returns:
        AnalysisSummary with counts and per-post details

    Raises:
        ValueError: If the designated provider has no client
    """
    if provider not in clients:
        raise ValueError(f"Provider {provider.value} is not configured")

    niches = await load_niches(store)
    candidates = await store.get_unresolved_posts(limit=limit * overfetch)
    ranked = rank_posts(candidates, niches, limit)

    logger.info(
        "analysis_starting",
        candidates=len(candidates),
        selected=len(ranked),
        provider=provider.value,
        niches=len(niches),
    )

    summary = AnalysisSummary()
    if not ranked:
        return summary

    start_analyze_task(len(ranked))
    for index, item in enumerate(ranked):
        post = item.post
        chosen = provider_for(index, provider)
        if chosen not in clients:
            chosen = provider
        if item.niches:
            summary.niche_matches += 1

        outcome = PostOutcome(
            post_id=post.id,
            status="rejected",
            provider=chosen.value,
            niches=item.niches,
            boost=item.boost,
        )
        try:
            analysis = await analyze_post(clients[chosen], post)
            if analysis is not None:
                # Also resolves the post as CONFIRMED, atomically
                outcome.opportunity_id = await store.create_opportunity(analysis, raw_post_id=post.id, provider=chosen)
                outcome.status = "opportunity"
                summary.opportunities_found += 1
            else:
                await store.resolve_post(post.id, Classification.REJECTED)
            summary.processed += 1
        except Exception as e:
            logger.error("post_analysis_failed", post_id=post.id, provider=chosen.value, error=str(e))
            outcome.status = "error"
            outcome.error = str(e)
            summary.errors += 1

        summary.details.append(outcome)
        advance_analyze()
        if delay > 0:
            await asyncio.sleep(delay)

    complete_analyze()
    logger.info(
        "analysis_complete",
        processed=summary.processed,
        opportunities_found=summary.opportunities_found,
        niche_matches=summary.niche_matches,
        errors=summary.errors,
    )
    return summary
