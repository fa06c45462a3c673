"""Shared test builders."""

import json

from langchain_core.language_models import FakeListChatModel
from langchain_core.runnables import RunnableLambda

from opportunity_radar.models import AIProvider, FeedItem
from opportunity_radar.providers import LLMClient


def analysis_payload(**overrides) -> dict:
    """A complete, valid opportunity analysis payload."""
    payload = {
        "is_opportunity": True,
        "title": "Invoice chaser for freelancers",
        "problem_statement": "Freelancers lose hours chasing unpaid invoices.",
        "proposed_solution": "Automated, polite payment reminders.",
        "target_audience": "Freelance designers and developers",
        "pain_intensity_score": 8,
        "market_size_score": 6,
        "technical_feasibility_score": 9,
        "competition_score": 5,
        "monetization_potential_score": 7,
        "ai_analysis_summary": "Strong recurring pain with clear willingness to pay.",
        "similar_existing_products": ["FreshBooks"],
        "suggested_mvp_features": ["Reminder schedule", "Stripe link"],
        "estimated_build_time": "1-2 weeks",
        "suggested_pricing_model": "$9/month",
        "keywords": ["invoice", "freelance"],
        "priority": "high",
    }
    payload.update(overrides)
    return payload


def fake_client(provider: AIProvider, responses: list) -> LLMClient:
    """Client that answers with canned responses (dicts are JSON-encoded)."""
    texts = [r if isinstance(r, str) else json.dumps(r) for r in responses]
    return LLMClient(provider, FakeListChatModel(responses=texts))


def failing_client(provider: AIProvider, message: str = "provider down") -> LLMClient:
    def _boom(_):
        raise RuntimeError(message)

    return LLMClient(provider, RunnableLambda(_boom))


def feed_item(external_id: str, title: str, body: str = "", score: int = 0) -> FeedItem:
    return FeedItem(
        external_id=external_id,
        title=title,
        body=body,
        author="someone",
        url=f"https://example.com/{external_id}",
        score=score,
    )
