"""OpenAI GPT client for structured tool-call responses."""

import json
from typing import Any

import openai
import structlog

from transactwise.clients.base import StructuredResponse
from transactwise.config import get_settings

logger = structlog.get_logger(__name__)


class OpenAIClient:
    """Client for OpenAI's chat completions API that forces a function call.

    Also supports OpenAI-compatible servers via a custom base_url.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        if api_key is None and settings.openai_api_key is not None:
            api_key = settings.openai_api_key.get_secret_value()
        self._api_key = api_key
        self._base_url = base_url  # None means use OpenAI's default
        self._model = model or settings.gpt_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = temperature if temperature is not None else settings.llm_temperature

        client_kwargs: dict[str, Any] = {"api_key": self._api_key}
        if self._base_url:
            client_kwargs["base_url"] = self._base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._logger = logger.bind(client="openai", model=self._model)

    def _convert_tool_to_openai_format(self, tool: dict[str, Any]) -> dict[str, Any]:
        """Convert our tool format to OpenAI's function format."""
        return {
            "type": "function",
            "function": {
                "name": tool["name"],
                "description": tool["description"],
                "parameters": tool["input_schema"],
            },
        }

    def _parse_response(
        self, response: openai.types.chat.ChatCompletion, tool_name: str
    ) -> StructuredResponse:
        """Parse OpenAI response into our format."""
        message = response.choices[0].message
        arguments: dict[str, Any] | None = None

        for tc in message.tool_calls or []:
            if tc.function.name != tool_name:
                continue
            try:
                decoded = json.loads(tc.function.arguments)
            except json.JSONDecodeError:
                self._logger.warning("tool_arguments_not_json", tool=tool_name)
                decoded = None
            arguments = decoded if isinstance(decoded, dict) else None

        finish_reason = response.choices[0].finish_reason
        stop_reason_map = {
            "stop": "end_turn",
            "tool_calls": "tool_use",
            "length": "max_tokens",
            "content_filter": "content_filter",
        }

        return StructuredResponse(
            tool_name=tool_name,
            arguments=arguments,
            stop_reason=stop_reason_map.get(finish_reason or "stop", "end_turn"),
            usage={
                "input_tokens": response.usage.prompt_tokens if response.usage else 0,
                "output_tokens": response.usage.completion_tokens if response.usage else 0,
            },
            text=message.content or "",
        )

    async def generate(
        self,
        system_prompt: str,
        prompt: str,
        tool: dict[str, Any],
    ) -> StructuredResponse:
        """Ask GPT to answer by calling ``tool``."""
        self._logger.debug("generating_response", tool=tool["name"], prompt_length=len(prompt))

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=self._temperature,
                max_completion_tokens=self._max_tokens,
                tools=[self._convert_tool_to_openai_format(tool)],
                tool_choice={"type": "function", "function": {"name": tool["name"]}},
            )
        except openai.APIError as e:
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
