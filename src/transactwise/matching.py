"""Transaction-to-entity matching.

The reasoning service proposes vendor/customer/account ids per transaction
index. The engine owns everything around that call: the request payload,
index validation, dropping ids that do not exist, and the account
resolution policy:

1. the matched entity's own default account, when its link resolves;
2. otherwise the account the service inferred, when it exists;
3. otherwise keyword inference from the transaction text (and the entity
   name, when an entity matched);
4. otherwise no account.
"""

from collections.abc import Sequence
from typing import Any

import structlog

from transactwise.accounts import infer_account
from transactwise.errors import MatchingError, ReasoningServiceError
from transactwise.models import MatchResult, RawTransaction
from transactwise.prompts import (
    MATCH_TRANSACTIONS_SYSTEM_PROMPT,
    SUBMIT_TRANSACTION_MATCHES_TOOL,
)
from transactwise.reasoning import (
    MatchedTransactionItem,
    MatchTransactionsResponse,
    ReasoningService,
)
from transactwise.store.entities import EntitySnapshot

logger = structlog.get_logger(__name__)


def build_match_payload(
    transactions: Sequence[RawTransaction], snapshot: EntitySnapshot
) -> dict[str, Any]:
    """Request payload; entity lists carry only the fields matching needs."""
    return {
        "transactions": [
            {
                "index": position,
                "date": t.date.isoformat() if t.date else None,
                "amount": str(t.amount),
                "text": t.matching_text,
                "description": t.description,
            }
            for position, t in enumerate(transactions)
        ],
        "vendors": [
            {
                "id": v.id,
                "vendorName": v.name,
                "defaultExpenseAccount": v.default_expense_account,
                "defaultExpenseAccountId": v.default_expense_account_id,
            }
            for v in snapshot.vendors
        ],
        "customers": [
            {
                "id": c.id,
                "customerName": c.name,
                "defaultRevenueAccount": c.default_revenue_account,
                "defaultRevenueAccountId": c.default_revenue_account_id,
            }
            for c in snapshot.customers
        ],
        "chartOfAccounts": [
            {
                "id": a.id,
                "accountName": a.account_name,
                "accountNumber": a.account_number,
                "subAccountName": a.sub_account_name,
                "subAccountNumber": a.sub_account_number,
            }
            for a in snapshot.accounts
        ],
    }


def index_matches(
    items: Sequence[MatchedTransactionItem], count: int
) -> dict[int, MatchedTransactionItem]:
    """Key service matches by row index.

    Raises:
        MatchingError: An index is out of range or appears twice.
    """
    by_index: dict[int, MatchedTransactionItem] = {}
    for item in items:
        index = item.raw_transaction_index
        if not 0 <= index < count:
            raise MatchingError(
                f"Match references transaction index {index}, expected 0..{count - 1}",
                details={"index": index, "count": count},
            )
        if index in by_index:
            raise MatchingError(
                f"Match references transaction index {index} more than once",
                details={"index": index},
            )
        by_index[index] = item
    return by_index


class MatchingEngine:
    """Best-effort mapping of raw transactions to vendors, customers and accounts."""

    def __init__(self, reasoning: ReasoningService):
        self._reasoning = reasoning

    async def match(
        self, transactions: Sequence[RawTransaction], snapshot: EntitySnapshot
    ) -> list[MatchResult]:
        """Match every transaction.

        Returns:
            One MatchResult per input, in input order (result ``i`` belongs to
            ``transactions[i]``). Rows with nothing matched are normal results.

        Raises:
            MatchingError: The service failed or answered outside its schema.
                No partial results are returned.
        """
        if not transactions:
            return []

        log = logger.bind(transactions=len(transactions))
        log.info("matching_started")

        try:
            response = await self._reasoning.request(
                system_prompt=MATCH_TRANSACTIONS_SYSTEM_PROMPT,
                title="Match these transactions.",
                payload=build_match_payload(transactions, snapshot),
                tool=SUBMIT_TRANSACTION_MATCHES_TOOL,
                response_model=MatchTransactionsResponse,
            )
        except MatchingError:
            raise
        except ReasoningServiceError as e:
            raise MatchingError(str(e), details=e.details) from e

        by_index = index_matches(response.matched_transactions, len(transactions))
        results = [
            self.resolve(position, transaction, by_index.get(position), snapshot)
            for position, transaction in enumerate(transactions)
        ]

        log.info(
            "matching_finished",
            with_entity=sum(1 for r in results if r.has_entity),
            with_account=sum(1 for r in results if r.chart_of_account_id),
        )
        return results

    def resolve(
        self,
        position: int,
        transaction: RawTransaction,
        item: MatchedTransactionItem | None,
        snapshot: EntitySnapshot,
    ) -> MatchResult:
        """Turn one service match into a MatchResult, applying the account policy."""
        vendor = snapshot.vendor(item.vendor_id) if item else None
        customer = snapshot.customer(item.customer_id) if item else None

        if item and item.vendor_id and vendor is None:
            logger.warning("unknown_vendor_dropped", index=position, vendor_id=item.vendor_id)
        if item and item.customer_id and customer is None:
            logger.warning(
                "unknown_customer_dropped", index=position, customer_id=item.customer_id
            )
        if vendor and customer:
            # A transaction belongs to one entity type; both means the match is ambiguous
            logger.warning("ambiguous_entity_dropped", index=position)
            vendor = customer = None

        entity = vendor or customer
        account = snapshot.default_account_for(entity)
        if account is None and item and item.chart_of_account_id:
            account = snapshot.account(item.chart_of_account_id)
            if account is None:
                logger.warning(
                    "unknown_account_dropped",
                    index=position,
                    chart_of_account_id=item.chart_of_account_id,
                )
        if account is None:
            texts = [transaction.matching_text, transaction.description]
            if entity is not None:
                texts.append(entity.name)
            account = infer_account(texts, snapshot.accounts)

        return MatchResult(
            index=position,
            vendor_id=vendor.id if vendor else None,
            customer_id=customer.id if customer else None,
            chart_of_account_id=account.id if account else None,
        )
