"""Research generation workflow for a stored opportunity."""

from __future__ import annotations

from .analyze import generate_research
from .logging_config import get_logger
from .models import ResearchType
from .providers import LLMClient
from .store import AsyncStore, OpportunityNotFound

logger = get_logger(__name__)


async def run_research(
    store: AsyncStore,
    client: LLMClient,
    opportunity_id: int,
    research_type: ResearchType | str,
) -> dict:
    """Generate research for an opportunity and persist it.

    Returns:
        The stored research row

    Raises:
        OpportunityNotFound: If the opportunity does not exist
        LLMAnalysisError: If generation fails (nothing is written)
    """
    research_type = ResearchType(research_type)
    opportunity = await store.get_opportunity(opportunity_id, with_relations=False)
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)

    logger.info(
        "research_starting",
        opportunity_id=opportunity_id,
        research_type=research_type.value,
        provider=client.provider.value,
    )
    result = await generate_research(client, opportunity, research_type)
    return await store.add_research(opportunity_id, research_type, result, provider=client.provider)
