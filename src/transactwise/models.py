"""Domain records for vendors, customers, accounts and transactions.

These are the fixed internal shapes the engines work with. Document field
names and spreadsheet column headers are translated at the edges
(see ``transactwise.store.mappers`` and ``transactwise.spreadsheet``).
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


class EntityKind(str, Enum):
    """Kinds of records held in the entity store."""

    VENDOR = "vendor"
    CUSTOMER = "customer"
    ACCOUNT = "account"


class TransactionStatus(str, Enum):
    """Review status of a working-set transaction."""

    UNMATCHED = "unmatched"
    MATCHED = "matched"
    EDITED = "edited"
    CONFIRMED = "confirmed"


@dataclass
class Vendor:
    """A supplier the company pays."""

    id: str
    company_id: str
    name: str
    email: str | None = None
    # Free text from import, used as a matching hint
    default_expense_account: str = ""
    # Weak link to a ChartOfAccount id; may dangle
    default_expense_account_id: str | None = None

    kind = EntityKind.VENDOR

    @property
    def default_account_text(self) -> str:
        return self.default_expense_account

    @property
    def default_account_id(self) -> str | None:
        return self.default_expense_account_id

    def with_default_account(self, account_id: str | None) -> "Vendor":
        return replace(self, default_expense_account_id=account_id)


@dataclass
class Customer:
    """A client the company bills."""

    id: str
    company_id: str
    name: str
    email: str | None = None
    default_revenue_account: str = ""
    default_revenue_account_id: str | None = None

    kind = EntityKind.CUSTOMER

    @property
    def default_account_text(self) -> str:
        return self.default_revenue_account

    @property
    def default_account_id(self) -> str | None:
        return self.default_revenue_account_id

    def with_default_account(self, account_id: str | None) -> "Customer":
        return replace(self, default_revenue_account_id=account_id)


@dataclass
class ChartOfAccount:
    """A ledger account, optionally carrying one nested sub-account."""

    id: str
    company_id: str
    account_name: str
    account_number: str | None = None
    account_type: str | None = None
    description: str | None = None
    sub_account_name: str | None = None
    sub_account_number: str | None = None
    default_vendor_id: str | None = None
    default_customer_id: str | None = None

    kind = EntityKind.ACCOUNT

    @property
    def has_sub_account(self) -> bool:
        return bool(self.sub_account_name or self.sub_account_number)

    @property
    def display_name(self) -> str:
        """Compose "<number> <name>: <sub number> <sub name>" for display."""
        name = f"{self.account_number} " if self.account_number else ""
        name += self.account_name
        if self.sub_account_name:
            sub_number = f"{self.sub_account_number} " if self.sub_account_number else ""
            name += f": {sub_number}{self.sub_account_name}"
        return name


Entity = Vendor | Customer
Record = Vendor | Customer | ChartOfAccount


@dataclass(frozen=True)
class RawTransaction:
    """A transaction row as extracted from an uploaded statement."""

    index: int
    date: date | None
    amount: Decimal
    statement_text: str = ""
    description: str = ""
    category: str | None = None
    payment_account: str | None = None
    memo: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def matching_text(self) -> str:
        """Text used for matching; the statement text wins over the description."""
        return (self.statement_text or self.description).strip()


@dataclass
class ReviewedTransaction:
    """Working-set row derived one-to-one from a RawTransaction."""

    id: str
    raw: RawTransaction
    status: TransactionStatus = TransactionStatus.UNMATCHED
    vendor_id: str | None = None
    customer_id: str | None = None
    chart_of_account_id: str | None = None
    matched_entity_name: str | None = None
    matched_account_name: str | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.status is TransactionStatus.CONFIRMED


@dataclass(frozen=True)
class MatchResult:
    """Matching outcome for one input row; every field is optional."""

    index: int
    vendor_id: str | None = None
    customer_id: str | None = None
    chart_of_account_id: str | None = None

    @property
    def has_entity(self) -> bool:
        return bool(self.vendor_id or self.customer_id)


@dataclass(frozen=True)
class VendorLink:
    vendor_id: str
    chart_of_account_id: str


@dataclass(frozen=True)
class CustomerLink:
    customer_id: str
    chart_of_account_id: str


@dataclass(frozen=True)
class SuggestedAccount:
    """An account proposed for a new company's chart of accounts."""

    account_name: str
    account_type: str
    account_description: str = ""
