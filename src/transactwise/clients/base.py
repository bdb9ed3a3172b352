"""Shared types for the LLM clients."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class LLMProvider(str, Enum):
    """LLM provider selection."""

    GEMINI = "gemini"
    CLAUDE = "claude"
    OPENAI = "openai"


@dataclass
class StructuredResponse:
    """Response from a forced tool call.

    ``arguments`` holds the tool input the model produced, or ``None`` if the
    model answered without calling the tool.
    """

    tool_name: str
    arguments: dict[str, Any] | None
    stop_reason: str
    usage: dict[str, int]
    text: str = ""


class ReasoningClient(Protocol):
    """What the reasoning service needs from an LLM client."""

    async def generate(
        self,
        system_prompt: str,
        prompt: str,
        tool: dict[str, Any],
    ) -> StructuredResponse: ...
