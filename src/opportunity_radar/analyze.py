"""Opportunity analysis and research generation through an LLM provider."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from pydantic import ValidationError

from .logging_config import get_logger
from .models import AIProvider, AnalysisVerdict, OpportunityAnalysis, RawPost, ResearchResult, ResearchType
from .prompts import ANALYSIS_PROMPT, research_prompt
from .providers import LLMClient

logger = get_logger(__name__)


class LLMAnalysisError(Exception):
    """Error during LLM analysis."""

    pass


class AnalysisParseError(LLMAnalysisError):
    """The model answered, but not with a valid payload."""

    pass


def strip_code_fences(text: str) -> str:
    """Remove a ```json / ``` wrapper around a model response."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_json_payload(text: str) -> dict[str, Any]:
    """Parse a model response into a JSON object.

    Raises:
        AnalysisParseError: If the text is not a JSON object
    """
    try:
        payload = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"Response is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise AnalysisParseError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload


async def _complete(client: LLMClient, prompt, context: str) -> str:
    try:
        return await client.generate(prompt)
    except Exception as e:
        logger.error("llm_call_failed", provider=client.provider.value, context=context, error=str(e))
        raise LLMAnalysisError(f"{client.provider.value} call failed for {context}: {e}") from e


async def analyze_post(client: LLMClient, post: RawPost) -> OpportunityAnalysis | None:
    """Ask the model whether a post is a micro SaaS opportunity.

    Args:
        client: Provider client
        post: Raw post to analyze

    Returns:
        OpportunityAnalysis, or None when the model says it is not an opportunity

    Raises:
        AnalysisParseError: If the response is malformed or fails validation
        LLMAnalysisError: If the provider call fails
    """
    logger.debug("analyzing_post", post_id=post.id, provider=client.provider.value, title=post.title[:50])

    prompt = ANALYSIS_PROMPT.format_prompt(
        title=post.title or "No title",
        body=post.body or "No body",
        score=post.score,
        comment_count=post.comment_count,
        url=post.url or "N/A",
    )
    text = await _complete(client, prompt, f"post {post.id}")
    payload = parse_json_payload(text)

    try:
        verdict = AnalysisVerdict.model_validate(payload)
    except ValidationError as e:
        raise AnalysisParseError(f"Invalid verdict for post {post.id}: {e}") from e

    if not verdict.is_opportunity:
        logger.info("post_not_opportunity", post_id=post.id, reason=str(payload.get("reason") or "")[:120])
        return None

    try:
        analysis = OpportunityAnalysis.model_validate(payload)
    except ValidationError as e:
        raise AnalysisParseError(f"Invalid analysis for post {post.id}: {e}") from e

    logger.info(
        "post_analyzed",
        post_id=post.id,
        provider=client.provider.value,
        title=analysis.title[:80],
        priority=analysis.priority.value,
    )
    return analysis


async def generate_research(
    client: LLMClient,
    opportunity: dict,
    research_type: ResearchType,
) -> ResearchResult:
    """Generate a research brief for an opportunity.

    Raises:
        AnalysisParseError: If the response is malformed or fails validation
        LLMAnalysisError: If the provider call fails
    """
    prompt = research_prompt(research_type).format_prompt(
        problem_statement=opportunity.get("problem_statement") or "",
        proposed_solution=opportunity.get("proposed_solution") or "",
    )
    text = await _complete(client, prompt, f"{research_type.value} research")
    payload = parse_json_payload(text)

    try:
        return ResearchResult.model_validate(payload)
    except ValidationError as e:
        raise AnalysisParseError(f"Invalid {research_type.value} research: {e}") from e


async def analyze_posts_batch(
    posts: list[RawPost],
    clients: dict[AIProvider, LLMClient],
    claude_weight: float = 0.5,
    max_concurrent: int = 3,
    delay: float = 1.0,
) -> dict[int, OpportunityAnalysis | None]:
    """Analyze posts concurrently, splitting load between providers.

    Each post goes to its primary provider (chosen by `claude_weight`); on
    any error it is retried once with the other provider, then recorded as
    None.

    Args:
        posts: Posts to analyze
        clients: Configured provider clients
        claude_weight: Share of posts (0-1) sent to Claude first
        max_concurrent: Posts analyzed concurrently per batch
        delay: Seconds to wait between batches

    Returns:
        Mapping of post id to analysis (None when rejected or failed)
    """
    results: dict[int, OpportunityAnalysis | None] = {}

    async def process(post: RawPost, index: int) -> None:
        use_openai = index % 10 >= claude_weight * 10
        primary = AIProvider.OPENAI if use_openai else AIProvider.CLAUDE
        for provider in (primary, primary.counterpart):
            client = clients.get(provider)
            if client is None:
                continue
            try:
                results[post.id] = await analyze_post(client, post)
                return
            except LLMAnalysisError as e:
                logger.warning("batch_analysis_failed", post_id=post.id, provider=provider.value, error=str(e))
        results[post.id] = None

    for start in range(0, len(posts), max_concurrent):
        batch = posts[start : start + max_concurrent]
        await asyncio.gather(*(process(post, start + offset) for offset, post in enumerate(batch)))
        if start + max_concurrent < len(posts) and delay > 0:
            await asyncio.sleep(delay)

    return results
