"""Structured requests to the LLM reasoning service.

The service is a collaborator: it gets a JSON payload and answers through a
forced tool call. This module owns the response schemas; anything that does
not validate is a hard failure for that call.
"""

from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from transactwise.clients import ReasoningClient, create_client
from transactwise.errors import ReasoningServiceError
from transactwise.prompts import render_request

logger = structlog.get_logger(__name__)


class _ResponseSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class MatchedTransactionItem(_ResponseSchema):
    raw_transaction_index: int = Field(alias="rawTransactionIndex")
    vendor_id: str | None = Field(default=None, alias="vendorId")
    customer_id: str | None = Field(default=None, alias="customerId")
    chart_of_account_id: str | None = Field(default=None, alias="chartOfAccountId")

    @field_validator("vendor_id", "customer_id", "chart_of_account_id", mode="before")
    @classmethod
    def _normalize_ids(cls, value: Any) -> Any:
        return _blank_to_none(value)


class MatchTransactionsResponse(_ResponseSchema):
    matched_transactions: list[MatchedTransactionItem] = Field(alias="matchedTransactions")


class VendorLinkItem(_ResponseSchema):
    vendor_id: str = Field(alias="vendorId", min_length=1)
    chart_of_account_id: str = Field(alias="chartOfAccountId", min_length=1)


class CustomerLinkItem(_ResponseSchema):
    customer_id: str = Field(alias="customerId", min_length=1)
    chart_of_account_id: str = Field(alias="chartOfAccountId", min_length=1)


class InterlinkAccountsResponse(_ResponseSchema):
    vendor_links: list[VendorLinkItem] = Field(alias="vendorLinks")
    customer_links: list[CustomerLinkItem] = Field(alias="customerLinks")


class SuggestedAccountItem(_ResponseSchema):
    account_name: str = Field(alias="accountName", min_length=1)
    account_type: str = Field(alias="accountType")
    account_description: str = Field(default="", alias="accountDescription")


class StartingChartResponse(_ResponseSchema):
    accounts: list[SuggestedAccountItem]


ResponseT = TypeVar("ResponseT", bound=BaseModel)


class ReasoningService:
    """Sends one structured request per call and validates the answer.

    The LLM client is created on first use from settings unless one is
    injected.
    """

    def __init__(self, client: ReasoningClient | None = None):
        self._client = client

    @property
    def client(self) -> ReasoningClient:
        if self._client is None:
            self._client = create_client()
        return self._client

    async def request(
        self,
        *,
        system_prompt: str,
        title: str,
        payload: dict[str, Any],
        tool: dict[str, Any],
        response_model: type[ResponseT],
    ) -> ResponseT:
        """Run one request and return the validated response.

        Raises:
            ReasoningServiceError: The call failed, the model did not call the
                tool, or the arguments do not match ``response_model``.
        """
        prompt = render_request(title, payload)
        try:
            response = await self.client.generate(system_prompt, prompt, tool)
        except Exception as e:
            logger.error("reasoning_call_failed", tool=tool["name"], error=str(e))
            raise ReasoningServiceError(f"Reasoning service call failed: {e}") from e

        if response.arguments is None:
            logger.error("reasoning_tool_not_called", tool=tool["name"], stop_reason=response.stop_reason)
            raise ReasoningServiceError(
                f"Reasoning service did not return a '{tool['name']}' result",
                details={"stop_reason": response.stop_reason, "text": response.text[:500]},
            )

        try:
            return response_model.model_validate(response.arguments)
        except ValidationError as e:
            logger.error("reasoning_schema_violation", tool=tool["name"], errors=e.error_count())
            raise ReasoningServiceError(
                "Reasoning service response does not match the expected schema",
                details=e.errors(include_url=False),
            ) from e
