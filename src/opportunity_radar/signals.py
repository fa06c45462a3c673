"""Heuristic signal filter deciding which posts are worth an LLM call.

A post "has signal" when its text carries a linguistic marker of pain or
unmet need. Posts without signal are stored as presumptive rejections and
never reach the analysis scheduler.
"""

from __future__ import annotations

import re

from .models import Classification, Source, SourcePlatform

FORUM_SIGNAL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"i wish there was",
        r"is there a tool",
        r"is there a way to",
        r"looking for a solution",
        r"anyone know of",
        r"recommendations? for",
        r"how do you handle",
        r"frustrated with",
        r"pain point",
        r"manually doing",
        r"waste.* time",
        r"automate",
        r"i('d| would) pay for",
        r"need a tool",
        r"built a tool",
        r"looking for software",
        r"what do you use for",
        r"better way to",
        r"struggling with",
        r"any alternatives to",
    )
)

STORY_SIGNAL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"ask hn",
        r"looking for",
        r"is there",
        r"anyone (built|know|use)",
        r"recommend",
        r"alternative to",
        r"frustrated",
        r"i wish",
        r"would pay",
        r"need a",
        r"show hn",
        r"built this",
        r"made this",
        r"launching",
        r"feedback",
        r"problem",
        r"solution",
    )
)

# Story lists whose every item is a candidate
ALWAYS_PENDING_STORY_TYPES = frozenset({"ask", "job"})


def patterns_for(platform: SourcePlatform) -> tuple[re.Pattern[str], ...]:
    """Return the signal pattern set used for a platform."""
    if platform is SourcePlatform.HACKERNEWS:
        return STORY_SIGNAL_PATTERNS
    return FORUM_SIGNAL_PATTERNS


def has_signal(text: str, platform: SourcePlatform = SourcePlatform.REDDIT) -> bool:
    """Check whether text contains an opportunity signal.

    Args:
        text: Post title and body
        platform: Platform whose pattern set applies

    Returns:
        True if any pattern matches
    """
    if not text:
        return False
    return any(pattern.search(text) for pattern in patterns_for(platform))


def initial_classification(source: Source, title: str, body: str) -> Classification:
    """Classify a freshly ingested post before any LLM review."""
    if source.platform is SourcePlatform.HACKERNEWS and source.identifier.lower() in ALWAYS_PENDING_STORY_TYPES:
        return Classification.PENDING
    if has_signal(f"{title} {body}", source.platform):
        return Classification.PENDING
    return Classification.REJECTED
