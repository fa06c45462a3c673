import pytest
import pytest_asyncio
import structlog

from opportunity_radar.config import Settings
from opportunity_radar.models import SourcePlatform
from opportunity_radar.store import AsyncStore


@pytest.fixture(autouse=True)
def _reset_structlog():
    # CLI tests configure structlog against CliRunner's temporary stderr,
    # which is closed afterwards; restore defaults so later tests can log.
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        db_path=":memory:",
        anthropic_api_key="",
        openai_api_key="",
        cron_secret="s3cret",
        source_delay_seconds=0,
        analysis_delay_seconds=0,
        hn_item_limit=5,
        hn_batch_size=2,
    )


@pytest_asyncio.fixture
async def store():
    store = AsyncStore(":memory:")
    await store.connect()
    await store.init_db()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def reddit_source(store):
    return await store.create_source(SourcePlatform.REDDIT, "SaaS", "r/SaaS")
