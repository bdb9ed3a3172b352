"""Google Gemini client for structured function-call responses.

Uses the google-genai SDK (v1.0+).
"""

from collections.abc import Callable
from typing import Any, cast

import structlog
from google import genai
from google.genai import types

from transactwise.clients.base import StructuredResponse
from transactwise.config import get_settings

logger = structlog.get_logger(__name__)


class GeminiClient:
    """Client for Google's Gemini API that forces a single function call."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        if api_key is None and settings.google_api_key is not None:
            api_key = settings.google_api_key.get_secret_value()
        self._api_key = api_key
        self._model_name = model or settings.gemini_model
        self._max_tokens = max_tokens or settings.llm_max_tokens
        self._temperature = temperature if temperature is not None else settings.llm_temperature

        self._client = genai.Client(api_key=self._api_key)
        self._logger = logger.bind(client="gemini", model=self._model_name)

    def _convert_json_schema_to_gemini(self, schema: dict[str, Any]) -> dict[str, Any]:
        """Convert JSON Schema to Gemini's schema format.

        Gemini uses a subset of OpenAPI schema format; optional fields are
        expressed with ``nullable`` instead of union types.
        """
        gemini_schema: dict[str, Any] = {}

        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            non_null = [t for t in schema_type if t != "null"]
            if len(non_null) < len(schema_type):
                gemini_schema["nullable"] = True
            schema_type = non_null[0] if non_null else "string"

        if schema_type:
            type_map = {
                "string": "STRING",
                "integer": "INTEGER",
                "number": "NUMBER",
                "boolean": "BOOLEAN",
                "array": "ARRAY",
                "object": "OBJECT",
            }
            gemini_schema["type"] = type_map.get(schema_type, "STRING")

        for key in ("description", "enum", "required"):
            if key in schema:
                gemini_schema[key] = schema[key]

        if "properties" in schema:
            gemini_schema["properties"] = {
                k: self._convert_json_schema_to_gemini(v)
                for k, v in schema["properties"].items()
            }

        if "items" in schema:
            gemini_schema["items"] = self._convert_json_schema_to_gemini(schema["items"])

        return gemini_schema

    def _convert_tool_to_gemini_format(self, tool: dict[str, Any]) -> types.Tool:
        parameters = types.Schema.model_validate(
            self._convert_json_schema_to_gemini(tool["input_schema"])
        )
        return types.Tool(
            function_declarations=[
                types.FunctionDeclaration(
                    name=tool["name"],
                    description=tool["description"],
                    parameters=parameters,
                )
            ]
        )

    def _parse_response(self, response: Any, tool_name: str) -> StructuredResponse:
        """Parse Gemini response into our format."""
        text = ""
        arguments: dict[str, Any] | None = None
        stop_reason = "end_turn"

        if response.candidates:
            candidate = response.candidates[0]
            parts = candidate.content.parts if candidate.content and candidate.content.parts else []

            for part in parts:
                if getattr(part, "function_call", None) and part.function_call.name == tool_name:
                    fc = part.function_call
                    arguments = dict(fc.args) if fc.args else {}
                elif getattr(part, "text", None):
                    text = part.text

            stop_reason_map = {
                "STOP": "end_turn",
                "MAX_TOKENS": "max_tokens",
                "SAFETY": "content_filter",
                "RECITATION": "content_filter",
            }
            finish_reason = candidate.finish_reason
            finish_name = getattr(finish_reason, "name", None) or str(finish_reason)
            stop_reason = stop_reason_map.get(finish_name, "end_turn")
            if arguments is not None:
                stop_reason = "tool_use"

        usage = {"input_tokens": 0, "output_tokens": 0}
        if getattr(response, "usage_metadata", None):
            usage["input_tokens"] = (
                getattr(response.usage_metadata, "prompt_token_count", 0) or 0
            )
            usage["output_tokens"] = (
                getattr(response.usage_metadata, "candidates_token_count", 0) or 0
            )

        return StructuredResponse(
            tool_name=tool_name,
            arguments=arguments,
            stop_reason=stop_reason,
            usage=usage,
            text=text,
        )

    async def generate(
        self,
        system_prompt: str,
        prompt: str,
        tool: dict[str, Any],
    ) -> StructuredResponse:
        """Ask Gemini to answer by calling ``tool``."""
        self._logger.debug("generating_response", tool=tool["name"], prompt_length=len(prompt))

        config = types.GenerateContentConfig(
            max_output_tokens=self._max_tokens,
            temperature=self._temperature,
            system_instruction=system_prompt,
            tools=cast(
                list[types.Tool | Callable[..., Any]],
                [self._convert_tool_to_gemini_format(tool)],
            ),
            tool_config=types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(
                    mode=types.FunctionCallingConfigMode.ANY,
                    allowed_function_names=[tool["name"]],
                )
            ),
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self._model_name,
                contents=prompt,
                config=config,
            )
        except Exception as e:
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
