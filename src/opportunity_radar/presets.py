"""Curated source presets for Opportunity Radar.

Presets are pre-configured source bundles targeting specific audiences.
Users seed a preset (e.g., "Indie SaaS Builders") instead of registering
subreddits and story lists one by one.
"""

from typing import TypedDict

from .models import SourcePlatform


class SourceSeed(TypedDict):
    """A source to register."""

    platform: str
    identifier: str
    display_name: str
    scrape_frequency_hours: int


class PresetConfig(TypedDict):
    """Configuration for a source preset."""

    name: str
    description: str
    sources: list[SourceSeed]


def _subreddits(*names: str, hours: int = 6) -> list[SourceSeed]:
    return [
        {
            "platform": SourcePlatform.REDDIT.value,
            "identifier": name,
            "display_name": f"r/{name}",
            "scrape_frequency_hours": hours,
        }
        for name in names
    ]


def _hn(*story_types: str, hours: int = 4) -> list[SourceSeed]:
    return [
        {
            "platform": SourcePlatform.HACKERNEWS.value,
            "identifier": story_type,
            "display_name": f"{story_type.capitalize()} HN",
            "scrape_frequency_hours": hours,
        }
        for story_type in story_types
    ]


PRESETS: dict[str, PresetConfig] = {
    "indie_saas": {
        "name": "Indie SaaS Builders",
        "description": "Solo founders, bootstrappers, micro-SaaS",
        "sources": _subreddits("SaaS", "SideProject", "IndieHackers", "MicroSaaS", "startups", "Entrepreneur"),
    },
    "hackernews": {
        "name": "Hacker News",
        "description": "Ask HN questions and Show HN launches",
        "sources": _hn("ask", "show"),
    },
    "smallbusiness": {
        "name": "Small Business Operators",
        "description": "Owners running e-commerce and service businesses",
        "sources": _subreddits("smallbusiness", "ecommerce", "shopify", "freelance"),
    },
    "devtools": {
        "name": "Developers & DevTools",
        "description": "Developer tooling, APIs, infrastructure",
        "sources": _subreddits("webdev", "devops", "selfhosted", "programming"),
    },
    "nocode": {
        "name": "No-Code Builders",
        "description": "No-code/low-code tool users and builders",
        "sources": _subreddits("nocode", "Notion", "Airtable", "zapier", hours=12),
    },
}

# Seeded when no preset is named
DEFAULT_PRESET_KEYS: tuple[str, ...] = ("indie_saas", "hackernews")


def get_preset(key: str) -> PresetConfig | None:
    """Get a preset by key."""
    return PRESETS.get(key)


def get_preset_keys() -> list[str]:
    """Get list of preset keys."""
    return list(PRESETS.keys())


def default_sources() -> list[SourceSeed]:
    """Sources from the default presets."""
    return [source for key in DEFAULT_PRESET_KEYS for source in PRESETS[key]["sources"]]
