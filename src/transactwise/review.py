"""Working set of transactions under review.

Each row moves ``unmatched -> matched -> edited -> confirmed``. Matching may
be re-run any number of times; it rebuilds every row that is not confirmed.
Confirmed rows are immutable.
"""

from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from transactwise.errors import (
    ImmutableTransactionError,
    ReviewError,
    TransactionNotFoundError,
)
from transactwise.models import (
    MatchResult,
    RawTransaction,
    ReviewedTransaction,
    TransactionStatus,
)
from transactwise.store import mappers
from transactwise.store.entities import EntitySnapshot

logger = structlog.get_logger(__name__)

# Sentinel for "argument not given", distinct from an explicit None
UNSET: Any = object()


def row_id_for(index: int) -> str:
    return f"temp-{index}"


class ReviewSession:
    """Holds the working set for one upload.

    Args:
        company_id: Company the confirmed rows are written for.
    """

    def __init__(self, company_id: str):
        self.company_id = company_id
        self._rows: dict[str, ReviewedTransaction] = {}

    def load(self, transactions: Sequence[RawTransaction]) -> list[ReviewedTransaction]:
        """Start a new working set, replacing any previous one."""
        self._rows = {
            row_id_for(t.index): ReviewedTransaction(id=row_id_for(t.index), raw=t)
            for t in transactions
        }
        logger.info("working_set_loaded", rows=len(self._rows))
        return self.rows

    @property
    def rows(self) -> list[ReviewedTransaction]:
        return list(self._rows.values())

    @property
    def unconfirmed(self) -> list[ReviewedTransaction]:
        """Rows still open for matching and edits, in working-set order."""
        return [row for row in self._rows.values() if not row.is_confirmed]

    def __len__(self) -> int:
        return len(self._rows)

    def get(self, row_id: str) -> ReviewedTransaction:
        try:
            return self._rows[row_id]
        except KeyError:
            raise TransactionNotFoundError(row_id) from None

    def apply_matches(
        self, results: Sequence[MatchResult], snapshot: EntitySnapshot
    ) -> list[ReviewedTransaction]:
        """Rebuild every non-confirmed row from its match result.

        ``results[i]`` belongs to the ``i``-th row of ``unconfirmed``. Rows
        with an entity become ``matched``; the rest are ``unmatched`` and keep
        whatever account was inferred. Manual edits on non-confirmed rows are
        discarded.

        Raises:
            ReviewError: ``results`` does not cover the unconfirmed rows.
        """
        rows = self.unconfirmed
        if len(results) != len(rows):
            raise ReviewError(
                f"Got {len(results)} match results for {len(rows)} unconfirmed transactions"
            )

        rebuilt = 0
        for row, result in zip(rows, results, strict=True):
            status = TransactionStatus.MATCHED if result.has_entity else TransactionStatus.UNMATCHED
            fresh = ReviewedTransaction(id=row.id, raw=row.raw, status=status)
            self._assign(fresh, result.vendor_id, result.customer_id, result.chart_of_account_id, snapshot)
            self._rows[row.id] = fresh
            rebuilt += 1

        logger.info(
            "matches_applied",
            rebuilt=rebuilt,
            matched=sum(1 for r in self._rows.values() if r.status is TransactionStatus.MATCHED),
        )
        return self.rows

    def edit(
        self,
        row_id: str,
        snapshot: EntitySnapshot,
        *,
        vendor_id: str | None = UNSET,
        customer_id: str | None = UNSET,
        chart_of_account_id: str | None = UNSET,
    ) -> ReviewedTransaction:
        """Manually set a row's vendor, customer or account.

        Selecting a vendor clears the customer and vice versa. Arguments left
        out keep their current value; ``None`` clears the field.

        Raises:
            TransactionNotFoundError: No row has ``row_id``.
            ImmutableTransactionError: The row is confirmed.
            ReviewError: Both a vendor and a customer were given.
        """
        row = self.get(row_id)
        if row.is_confirmed:
            raise ImmutableTransactionError(row_id)
        if vendor_id and customer_id and vendor_id is not UNSET and customer_id is not UNSET:
            raise ReviewError("A transaction can reference a vendor or a customer, not both")

        new_vendor = row.vendor_id
        new_customer = row.customer_id
        if vendor_id is not UNSET:
            new_vendor = vendor_id
            if vendor_id:
                new_customer = None
        if customer_id is not UNSET:
            new_customer = customer_id
            if customer_id:
                new_vendor = None
        new_account = row.chart_of_account_id if chart_of_account_id is UNSET else chart_of_account_id

        self._assign(row, new_vendor, new_customer, new_account, snapshot)
        row.status = TransactionStatus.EDITED
        logger.debug("transaction_edited", row_id=row_id)
        return row

    def pending_confirmation(self, row_ids: Iterable[str]) -> list[ReviewedTransaction]:
        """Rows among ``row_ids`` that still need persisting, in working-set order.

        Already confirmed rows are skipped, so confirming twice is a no-op.

        Raises:
            TransactionNotFoundError: An id is not in the working set.
        """
        wanted = set(row_ids)
        for row_id in wanted:
            self.get(row_id)
        return [r for r in self._rows.values() if r.id in wanted and not r.is_confirmed]

    def mark_confirmed(self, row_ids: Iterable[str]) -> None:
        """Flag rows as confirmed; call only once they are durably written."""
        for row_id in row_ids:
            self.get(row_id).status = TransactionStatus.CONFIRMED

    def confirmed(self) -> list[ReviewedTransaction]:
        return [r for r in self._rows.values() if r.is_confirmed]

    def to_document(self, row: ReviewedTransaction) -> dict[str, Any]:
        return mappers.transaction_to_document(row, self.company_id)

    @staticmethod
    def _assign(
        row: ReviewedTransaction,
        vendor_id: str | None,
        customer_id: str | None,
        chart_of_account_id: str | None,
        snapshot: EntitySnapshot,
    ) -> None:
        row.vendor_id = vendor_id or None
        row.customer_id = customer_id or None
        row.chart_of_account_id = chart_of_account_id or None

        entity = snapshot.vendor(row.vendor_id) or snapshot.customer(row.customer_id)
        account = snapshot.account(row.chart_of_account_id)
        row.matched_entity_name = entity.name if entity else None
        row.matched_account_name = account.display_name if account else None
