"""Pytest configuration and fixtures."""

import os
from typing import Any

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("GOOGLE_API_KEY", "test-key")
os.environ.setdefault("LLM_PROVIDER", "gemini")

from transactwise.clients.base import StructuredResponse  # noqa: E402
from transactwise.models import ChartOfAccount, Customer, Vendor  # noqa: E402
from transactwise.reasoning import ReasoningService  # noqa: E402
from transactwise.store.documents import (  # noqa: E402
    CHART_OF_ACCOUNTS,
    CUSTOMERS,
    VENDORS,
    CompanyScope,
    InMemoryDocumentStore,
)
from transactwise.store.entities import EntitySnapshot  # noqa: E402
from transactwise.store.mappers import record_to_document  # noqa: E402

COMPANY_ID = "company-1"


class FakeReasoningClient:
    """Returns queued tool arguments and records every request."""

    def __init__(self, *responses: dict[str, Any] | None | Exception):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def queue(self, response: dict[str, Any] | None | Exception) -> None:
        self.responses.append(response)

    async def generate(
        self, system_prompt: str, prompt: str, tool: dict[str, Any]
    ) -> StructuredResponse:
        self.calls.append({"system_prompt": system_prompt, "prompt": prompt, "tool": tool})
        if not self.responses:
            raise AssertionError(f"Unexpected reasoning call for {tool['name']}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return StructuredResponse(
            tool_name=tool["name"],
            arguments=response,
            stop_reason="tool_use" if response is not None else "end_turn",
            usage={"input_tokens": 10, "output_tokens": 5},
        )


@pytest.fixture
def fake_client():
    """A reasoning client with no queued answers."""
    return FakeReasoningClient()


@pytest.fixture
def reasoning(fake_client):
    """Reasoning service backed by the fake client."""
    return ReasoningService(client=fake_client)


@pytest.fixture
def scope():
    return CompanyScope(user_id="user-1", company_id=COMPANY_ID)


@pytest.fixture
def vendors():
    """Vendors with and without default-account links."""
    return [
        Vendor(
            id="v-starbucks",
            company_id=COMPANY_ID,
            name="Starbucks",
            default_expense_account="Meals & Entertainment",
            default_expense_account_id="coa-meals",
        ),
        Vendor(
            id="v-delta",
            company_id=COMPANY_ID,
            name="Delta Air Lines",
            default_expense_account="5000.1",
        ),
        Vendor(
            id="v-staples",
            company_id=COMPANY_ID,
            name="Staples",
            default_expense_account="Office Supplies",
        ),
        Vendor(id="v-unknown", company_id=COMPANY_ID, name="Corner Store"),
    ]


@pytest.fixture
def customers():
    return [
        Customer(
            id="c-acme",
            company_id=COMPANY_ID,
            name="Acme Corp",
            default_revenue_account="Consulting Revenue",
        ),
        Customer(id="c-globex", company_id=COMPANY_ID, name="Globex"),
    ]


@pytest.fixture
def accounts():
    """A small chart with a parent account and its sub-accounts."""
    return [
        ChartOfAccount(
            id="coa-meals",
            company_id=COMPANY_ID,
            account_name="Meals & Entertainment",
            account_number="6100",
            account_type="Expense",
        ),
        ChartOfAccount(
            id="coa-travel",
            company_id=COMPANY_ID,
            account_name="Travel",
            account_number="5000",
            account_type="Expense",
        ),
        ChartOfAccount(
            id="coa-airfare",
            company_id=COMPANY_ID,
            account_name="Travel",
            account_number="5000",
            account_type="Expense",
            sub_account_name="Airfare",
            sub_account_number="5000.1",
        ),
        ChartOfAccount(
            id="coa-lodging",
            company_id=COMPANY_ID,
            account_name="Travel",
            account_number="5000",
            account_type="Expense",
            sub_account_name="Lodging",
            sub_account_number="5000.2",
        ),
        ChartOfAccount(
            id="coa-office",
            company_id=COMPANY_ID,
            account_name="Office Supplies",
            account_number="6200",
            account_type="Expense",
        ),
        ChartOfAccount(
            id="coa-consulting",
            company_id=COMPANY_ID,
            account_name="Consulting Revenue",
            account_number="4000",
            account_type="Revenue",
        ),
    ]


@pytest.fixture
def snapshot(vendors, customers, accounts):
    return EntitySnapshot.build(vendors, customers, accounts)


@pytest.fixture
def document_store(scope, vendors, customers, accounts):
    """In-memory store seeded with the fixture entities."""
    store = InMemoryDocumentStore()
    for collection, records in (
        (VENDORS, vendors),
        (CUSTOMERS, customers),
        (CHART_OF_ACCOUNTS, accounts),
    ):
        store.seed(
            scope.collection(collection),
            [{"id": r.id, **record_to_document(r)} for r in records],
        )
    return store


@pytest.fixture
def statement_csv(tmp_path):
    """A small card statement in CSV form."""
    path = tmp_path / "statement.csv"
    path.write_text(
        "Date,Appears On Your Statement As,Description,Amount,Category,Memo,Card Member\n"
        "2024-03-01,STARBUCKS COFFEE #123,Coffee,-5.75,Dining,,J DOE\n"
        "2024-03-02,DELTA AIR 0062345,Flight to NYC,-420.00,Travel,,J DOE\n"
        "2024-03-03,ACME CORP PAYMENT,Invoice 1001,1500.00,,March retainer,\n"
        "2024-03-04,UNKNOWN MERCHANT 99,,-12.00,,,\n",
        encoding="utf-8",
    )
    return path
