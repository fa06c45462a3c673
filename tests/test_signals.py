import pytest

from opportunity_radar.models import Classification, Source, SourcePlatform
from opportunity_radar.signals import has_signal, initial_classification


def _source(platform, identifier):
    return Source(
        id=1,
        platform=platform,
        identifier=identifier,
        display_name=identifier,
        scrape_frequency_hours=6,
        is_active=True,
    )


@pytest.mark.parametrize(
    "text",
    [
        "I wish there was an app for this",
        "Is there a tool that syncs Notion and Jira?",
        "I'd pay for something that does this",
        "Any alternatives to Zapier?",
        "I'm so FRUSTRATED WITH my invoicing setup",
    ],
)
def test_forum_signals_match(text):
    assert has_signal(text)


def test_forum_signal_is_case_insensitive():
    assert has_signal("LOOKING FOR A SOLUTION to backups")


def test_no_signal():
    assert not has_signal("Here is a photo of my cat")
    assert not has_signal("")


def test_story_patterns_are_platform_specific():
    text = "Launching our new database today"
    assert has_signal(text, SourcePlatform.HACKERNEWS)
    assert not has_signal(text, SourcePlatform.REDDIT)


def test_initial_classification_uses_title_and_body():
    source = _source(SourcePlatform.REDDIT, "SaaS")
    assert initial_classification(source, "Weekly thread", "anyone know of a CRM?") is Classification.PENDING
    assert initial_classification(source, "My cat", "Isn't she cute") is Classification.REJECTED


@pytest.mark.parametrize("story_type", ["ask", "job"])
def test_ask_and_job_stories_bypass_filter(story_type):
    source = _source(SourcePlatform.HACKERNEWS, story_type)
    assert initial_classification(source, "Quiet title", "") is Classification.PENDING


def test_other_story_lists_are_filtered():
    source = _source(SourcePlatform.HACKERNEWS, "top")
    assert initial_classification(source, "Quiet title", "") is Classification.REJECTED
