"""Request bodies for the JSON API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models import AIProvider, Priority, ResearchType, SourcePlatform
from ..niches import normalize_keywords

NON_NULLABLE_NICHE_FIELDS = ("name", "keywords", "priority", "is_active")


class AnalyzeRequest(BaseModel):
    limit: int = Field(default=10, ge=1, le=100)
    provider: AIProvider = AIProvider.CLAUDE


class ManualOpportunityRequest(BaseModel):
    title: str = Field(..., min_length=1)
    problem_statement: str = Field(..., min_length=1)
    proposed_solution: str | None = None
    target_audience: str | None = None
    notes: str | None = None


class ResearchRequest(BaseModel):
    opportunity_id: int
    research_type: ResearchType
    provider: AIProvider = AIProvider.CLAUDE


class SourceCreate(BaseModel):
    platform: SourcePlatform
    identifier: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    scrape_frequency_hours: int = Field(default=6, ge=1)
    is_active: bool = True


class SourceUpdate(BaseModel):
    """Partial source update; `id` selects the row."""

    model_config = ConfigDict(extra="forbid")

    id: int
    platform: SourcePlatform | None = None
    identifier: str | None = Field(default=None, min_length=1)
    display_name: str | None = Field(default=None, min_length=1)
    scrape_frequency_hours: int | None = Field(default=None, ge=1)
    is_active: bool | None = None


class NicheCreate(BaseModel):
    name: str = Field(..., min_length=1)
    keywords: list[str] = Field(..., min_length=1)
    priority: Priority
    description: str | None = None
    is_active: bool = True

    @field_validator("keywords", mode="before")
    @classmethod
    def parse_keywords(cls, v):
        return normalize_keywords(v)


class NicheUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data):
        if isinstance(data, dict):
            nulls = sorted(k for k in NON_NULLABLE_NICHE_FIELDS if k in data and data[k] is None)
            if nulls:
                raise ValueError(f"{', '.join(nulls)} cannot be null")
        return data

    name: str | None = Field(default=None, min_length=1)
    keywords: list[str] | None = Field(default=None, min_length=1)
    priority: Priority | None = None
    description: str | None = None
    is_active: bool | None = None

    @field_validator("keywords", mode="before")
    @classmethod
    def parse_keywords(cls, v):
        return normalize_keywords(v)
