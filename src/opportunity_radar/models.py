"""Domain enums, records and pydantic models for LLM structured outputs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictBool


class SourcePlatform(str, Enum):
    """Platform a content source lives on."""

    REDDIT = "reddit"  # Forum-style RSS feed, identifier is the subreddit
    HACKERNEWS = "hackernews"  # Public story API, identifier is the story list
    INDIEHACKERS = "indiehackers"
    TWITTER = "twitter"
    PRODUCTHUNT = "producthunt"
    QUORA = "quora"
    OTHER = "other"


class Priority(str, Enum):
    """Priority level shared by niches and opportunities."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Lower index wins when resolving the highest priority
PRIORITY_ORDER: tuple[Priority, ...] = (Priority.HIGH, Priority.MEDIUM, Priority.LOW)


class OpportunityStatus(str, Enum):
    """Workflow status of an opportunity. Any state may follow any other."""

    NEW = "new"
    REVIEWING = "reviewing"
    RESEARCHING = "researching"
    VALIDATED = "validated"
    BUILDING = "building"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class ResearchType(str, Enum):
    """Kind of follow-up research generated for an opportunity."""

    COMPETITOR_ANALYSIS = "competitor_analysis"
    MARKET_SIZE = "market_size"
    TECHNICAL_SPIKE = "technical_spike"


class ReactionType(str, Enum):
    """Audit-log action recorded against an opportunity."""

    STATUS_CHANGE = "status_change"
    STARRED = "starred"
    UNSTARRED = "unstarred"
    NOTE = "note"
    RESEARCH_ADDED = "research_added"


class Classification(str, Enum):
    """Opportunity verdict for a raw post.

    Stored as the nullable `is_opportunity` column: NULL is PENDING,
    1 is CONFIRMED, 0 is REJECTED.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"

    @classmethod
    def from_db(cls, value: int | None) -> Classification:
        if value is None:
            return cls.PENDING
        return cls.CONFIRMED if value else cls.REJECTED

    def to_db(self) -> int | None:
        if self is Classification.PENDING:
            return None
        return 1 if self is Classification.CONFIRMED else 0


class AIProvider(str, Enum):
    """LLM backend used for analysis."""

    CLAUDE = "claude"
    OPENAI = "openai"

    @property
    def counterpart(self) -> AIProvider:
        """The other provider, used for alternation and fallback."""
        return AIProvider.OPENAI if self is AIProvider.CLAUDE else AIProvider.CLAUDE


@dataclass
class Source:
    """A configured content source."""

    id: int
    platform: SourcePlatform
    identifier: str
    display_name: str
    scrape_frequency_hours: int
    is_active: bool
    last_scraped_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> Source:
        last = row.get("last_scraped_at")
        return cls(
            id=row["id"],
            platform=SourcePlatform(row["platform"]),
            identifier=row["identifier"],
            display_name=row["display_name"],
            scrape_frequency_hours=row["scrape_frequency_hours"],
            is_active=bool(row["is_active"]),
            last_scraped_at=datetime.fromisoformat(last) if last else None,
        )


@dataclass
class FeedItem:
    """Normalized item returned by a source transport."""

    external_id: str
    title: str
    body: str
    author: str
    url: str
    score: int = 0
    comment_count: int = 0
    posted_at: datetime | None = None


@dataclass
class RawPost:
    """A normalized ingested post awaiting or past classification."""

    id: int
    source_id: int
    external_id: str
    title: str
    body: str
    author: str
    url: str
    score: int
    comment_count: int
    posted_at: str | None
    is_processed: bool
    classification: Classification


class AnalysisVerdict(BaseModel):
    """The accept/reject decision leading every analysis response."""

    model_config = ConfigDict(extra="ignore")

    is_opportunity: StrictBool


class OpportunityAnalysis(BaseModel):
    """Structured analysis of a post judged to be an opportunity.

    Validation is strict: a payload missing a required field or carrying an
    out-of-range score is a parse failure, not a partial record.
    """

    model_config = ConfigDict(extra="ignore")

    is_opportunity: StrictBool = True
    title: str = Field(..., min_length=1, description="Concise opportunity title")
    problem_statement: str = Field(..., min_length=1, description="1-2 sentence problem description")
    proposed_solution: str = Field(..., description="High-level solution concept")
    target_audience: str = Field(..., description="Who would pay for this")

    pain_intensity_score: int = Field(..., ge=1, le=10)
    market_size_score: int = Field(..., ge=1, le=10)
    technical_feasibility_score: int = Field(..., ge=1, le=10)
    competition_score: int = Field(..., ge=1, le=10, description="10 = no competition, 1 = saturated")
    monetization_potential_score: int = Field(..., ge=1, le=10)

    ai_analysis_summary: str = Field(..., description="2-3 paragraph analysis")
    similar_existing_products: list[str] = Field(default_factory=list)
    suggested_mvp_features: list[str] = Field(default_factory=list)
    estimated_build_time: str | None = Field(default=None)
    suggested_pricing_model: str | None = Field(default=None)
    keywords: list[str] = Field(default_factory=list)
    priority: Priority = Field(..., description="Opportunity priority: high, medium or low")


class ResearchResult(BaseModel):
    """Structured output of a research generation call."""

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, description="Markdown-formatted research body")
    sources: list[str] = Field(default_factory=list, description="Source references")
