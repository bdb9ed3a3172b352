"""LLM client implementations used by the reasoning service."""

from transactwise.clients.base import LLMProvider, ReasoningClient, StructuredResponse
from transactwise.clients.claude import ClaudeClient
from transactwise.clients.gemini import GeminiClient
from transactwise.clients.openai_client import OpenAIClient
from transactwise.config import get_settings


def create_client(provider: LLMProvider | str | None = None) -> ReasoningClient:
    """Create the LLM client for a provider, defaulting to LLM_PROVIDER."""
    provider = LLMProvider(provider or get_settings().llm_provider)
    if provider == LLMProvider.CLAUDE:
        return ClaudeClient()
    if provider == LLMProvider.OPENAI:
        return OpenAIClient()
    return GeminiClient()


__all__ = [
    "LLMProvider",
    "ReasoningClient",
    "StructuredResponse",
    "ClaudeClient",
    "GeminiClient",
    "OpenAIClient",
    "create_client",
]
