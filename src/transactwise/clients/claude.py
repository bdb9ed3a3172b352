"""Claude (Anthropic) client for structured tool-call responses."""

from typing import Any

import anthropic
import structlog

from transactwise.clients.base import StructuredResponse
from transactwise.config import get_settings

logger = structlog.get_logger(__name__)


class ClaudeClient:
    """Client for Anthropic's Claude API that forces a single tool call."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        if api_key is None and settings.anthropic_api_key is not None:
            api_key = settings.anthropic_api_key.get_secret_value()
        self._api_key = api_key
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = temperature if temperature is not None else settings.llm_temperature

        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        self._logger = logger.bind(client="claude", model=self._model)

    def _convert_tool_to_anthropic_format(self, tool: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": tool["name"],
            "description": tool["description"],
            "input_schema": tool["input_schema"],
        }

    def _parse_response(
        self, response: anthropic.types.Message, tool_name: str
    ) -> StructuredResponse:
        """Parse Anthropic response into our format."""
        text = ""
        arguments: dict[str, Any] | None = None

        for block in response.content:
            if block.type == "text":
                text = block.text
            elif block.type == "tool_use" and block.name == tool_name:
                arguments = dict(block.input) if isinstance(block.input, dict) else None

        return StructuredResponse(
            tool_name=tool_name,
            arguments=arguments,
            stop_reason=response.stop_reason or "end_turn",
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            text=text,
        )

    async def generate(
        self,
        system_prompt: str,
        prompt: str,
        tool: dict[str, Any],
    ) -> StructuredResponse:
        """Ask Claude to answer by calling ``tool``.

        Args:
            system_prompt: Instructions for the task.
            prompt: The user message carrying the request payload.
            tool: Tool definition whose input schema is the response schema.

        Returns:
            StructuredResponse with the tool arguments and usage info.
        """
        self._logger.debug("generating_response", tool=tool["name"], prompt_length=len(prompt))

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": prompt}],
                tools=[self._convert_tool_to_anthropic_format(tool)],
                tool_choice={"type": "tool", "name": tool["name"]},
            )
        except anthropic.APIError as e:
            self._logger.error("api_error", error=str(e))
            raise

        parsed = self._parse_response(response, tool["name"])
        self._logger.info(
            "response_generated",
            stop_reason=parsed.stop_reason,
            tool_called=parsed.arguments is not None,
            input_tokens=parsed.usage["input_tokens"],
            output_tokens=parsed.usage["output_tokens"],
        )
        return parsed
