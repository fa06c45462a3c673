"""Dual LLM provider abstraction over LangChain chat models."""

from __future__ import annotations

from dataclasses import dataclass

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import BaseMessage
from langchain_core.prompt_values import PromptValue
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI

from .config import Settings
from .logging_config import get_logger
from .models import AIProvider

logger = get_logger(__name__)


def _message_text(message: BaseMessage | str) -> str:
    """Flatten a chat response into plain text.

    Anthropic responses may carry a list of content blocks; only text
    blocks are kept.
    """
    if isinstance(message, str):
        return message
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


@dataclass
class LLMClient:
    """A configured provider: generate(prompt) returns the raw completion text."""

    provider: AIProvider
    llm: Runnable

    async def generate(self, prompt: PromptValue | str) -> str:
        message = await self.llm.ainvoke(prompt)
        return _message_text(message)


def create_chat_model(provider: AIProvider, settings: Settings) -> Runnable:
    """Create the LangChain chat model for a provider.

    Raises:
        ValueError: If the provider has no API key configured
    """
    if provider is AIProvider.CLAUDE:
        if not settings.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY is not configured")
        return ChatAnthropic(
            model=settings.anthropic_model,
            api_key=settings.anthropic_api_key,
            max_tokens=settings.llm_max_tokens,
        )

    if not settings.openai_api_key:
        raise ValueError("OPENAI_API_KEY is not configured")
    llm = ChatOpenAI(
        model=settings.openai_model,
        api_key=settings.openai_api_key,
        max_tokens=settings.llm_max_tokens,
    )
    return llm.bind(response_format={"type": "json_object"})


def build_clients(settings: Settings) -> dict[AIProvider, LLMClient]:
    """Build one client per provider that has an API key."""
    clients: dict[AIProvider, LLMClient] = {}
    for provider, key in (
        (AIProvider.CLAUDE, settings.anthropic_api_key),
        (AIProvider.OPENAI, settings.openai_api_key),
    ):
        if key:
            clients[provider] = LLMClient(provider, create_chat_model(provider, settings))
    logger.debug("llm_clients_built", providers=[p.value for p in clients])
    return clients
