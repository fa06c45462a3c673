"""Request-scoped dependencies, overridable through `app.dependency_overrides`."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends

from ..config import Settings, get_settings
from ..models import AIProvider
from ..providers import LLMClient, build_clients
from ..store import AsyncStore


def get_app_settings() -> Settings:
    return get_settings()


async def get_store(settings: Settings = Depends(get_app_settings)) -> AsyncIterator[AsyncStore]:
    store = AsyncStore(settings.db_path)
    await store.connect()
    await store.init_db()
    try:
        yield store
    finally:
        await store.close()


def get_llm_clients(settings: Settings = Depends(get_app_settings)) -> dict[AIProvider, LLMClient]:
    return build_clients(settings)
