"""Bookkeeping session: one user working on one company.

The session wires the entity store, matching, review, interlinking and
bulk persistence together. It is constructed explicitly per (user, company)
and owns the working set of uploaded transactions.

Typical flow::

    session = BookkeepingSession(CompanyScope(user_id, company_id), store)
    await session.open()
    session.upload_transactions("statement.xlsx")
    await session.run_matching()
    session.edit_transaction("temp-3", vendor_id="v1")
    report = await session.confirm(["temp-0", "temp-3"])
"""

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from pathlib import Path

import structlog

from transactwise import spreadsheet
from transactwise.coa import ChartOfAccountsGenerator, to_chart_of_account
from transactwise.errors import InputError, InterlinkError, OperationInProgressError
from transactwise.interlink import InterlinkEngine, Link
from transactwise.matching import MatchingEngine
from transactwise.models import (
    ChartOfAccount,
    EntityKind,
    ReviewedTransaction,
    SuggestedAccount,
)
from transactwise.persistence import BulkPersistenceCoordinator, PersistenceReport
from transactwise.reasoning import ReasoningService
from transactwise.review import UNSET, ReviewSession
from transactwise.store import mappers
from transactwise.store.documents import (
    CHART_OF_ACCOUNTS,
    TRANSACTIONS,
    CompanyScope,
    DocumentStore,
    WriteOp,
    new_document_id,
)
from transactwise.store.entities import EntitySnapshot, EntityStore

logger = structlog.get_logger(__name__)

EXPORT_COLUMNS = ("Date", "Description", "Amount", "Entity", "Account", "Memo")

# Busy-flag names; operations sharing a flag cannot overlap
_WORKING_SET = "working_set"
_INTERLINK = "interlink"


class BookkeepingSession:
    """Entry point for the transaction and interlink workflows of one company.

    Args:
        scope: The owning user and company.
        documents: Durable document store.
        reasoning: Reasoning service; one backed by the configured LLM
            provider is created when omitted.
        coordinator: Bulk writer; defaults to one over ``documents`` with
            the configured batch size.
    """

    def __init__(
        self,
        scope: CompanyScope,
        documents: DocumentStore,
        reasoning: ReasoningService | None = None,
        coordinator: BulkPersistenceCoordinator | None = None,
    ):
        self.scope = scope
        self.documents = documents
        self.reasoning = reasoning or ReasoningService()
        self.coordinator = coordinator or BulkPersistenceCoordinator(documents)

        self.entities = EntityStore(documents, scope)
        self.review = ReviewSession(scope.company_id)
        self.matching = MatchingEngine(self.reasoning)
        self.interlink = InterlinkEngine(self.reasoning, self.entities, self.coordinator)
        self.coa_generator = ChartOfAccountsGenerator(self.reasoning)

        self._busy: dict[str, str] = {}
        self._logger = logger.bind(company_id=scope.company_id)

    async def open(self) -> EntitySnapshot:
        """Load the company's vendors, customers and accounts."""
        return await self.entities.load()

    @asynccontextmanager
    async def _exclusive(self, flag: str, operation: str) -> AsyncIterator[None]:
        running = self._busy.get(flag)
        if running is not None:
            raise OperationInProgressError(operation, running)
        self._busy[flag] = operation
        try:
            yield
        finally:
            del self._busy[flag]

    def _ensure_idle(self, flag: str, operation: str) -> None:
        running = self._busy.get(flag)
        if running is not None:
            raise OperationInProgressError(operation, running)

    # === Transactions ===

    def upload_transactions(self, path: str | Path) -> list[ReviewedTransaction]:
        """Parse a statement file into a new working set.

        Raises:
            InputError: The file is unusable; the current working set is kept.
        """
        self._ensure_idle(_WORKING_SET, "upload")
        transactions = spreadsheet.load_transactions(path)
        return self.review.load(transactions)

    @property
    def transactions(self) -> list[ReviewedTransaction]:
        return self.review.rows

    async def run_matching(self) -> list[ReviewedTransaction]:
        """Match the unconfirmed rows against the current entities.

        Raises:
            InputError: Nothing has been uploaded.
            MatchingError: Matching failed; the working set is unchanged.
            OperationInProgressError: Matching or confirmation is running.
        """
        async with self._exclusive(_WORKING_SET, "matching"):
            if not len(self.review):
                raise InputError("Upload transactions before running matching")
            snapshot = self.entities.snapshot()
            pending = [row.raw for row in self.review.unconfirmed]
            results = await self.matching.match(pending, snapshot)
            return self.review.apply_matches(results, snapshot)

    def edit_transaction(
        self,
        row_id: str,
        *,
        vendor_id: str | None = UNSET,
        customer_id: str | None = UNSET,
        chart_of_account_id: str | None = UNSET,
    ) -> ReviewedTransaction:
        """Manually correct one row; see ``ReviewSession.edit``."""
        self._ensure_idle(_WORKING_SET, "edit")
        return self.review.edit(
            row_id,
            self.entities.snapshot(),
            vendor_id=vendor_id,
            customer_id=customer_id,
            chart_of_account_id=chart_of_account_id,
        )

    def _transaction_writes(self, row: ReviewedTransaction) -> list[WriteOp]:
        path = self.scope.document(TRANSACTIONS, new_document_id())
        return [WriteOp.set(path, self.review.to_document(row))]

    def _mark_confirmed(self, rows: list[ReviewedTransaction]) -> None:
        self.review.mark_confirmed(row.id for row in rows)

    async def confirm(self, row_ids: Iterable[str]) -> PersistenceReport[ReviewedTransaction]:
        """Persist the selected rows and mark them confirmed.

        Rows already confirmed are skipped. Rows become confirmed batch by
        batch as their commit succeeds; rows in a failed or later batch stay
        pending and can be confirmed again.

        Raises:
            TransactionNotFoundError: An id is not in the working set.
            OperationInProgressError: Matching or confirmation is running.
        """
        async with self._exclusive(_WORKING_SET, "confirm"):
            pending = self.review.pending_confirmation(row_ids)
            if not pending:
                self._logger.info("confirm_nothing_pending")
                return PersistenceReport(attempted=0)

            report = await self.coordinator.persist(
                pending, self._transaction_writes, on_batch_committed=self._mark_confirmed
            )
            if report.complete:
                self._logger.info("transactions_confirmed", confirmed=report.succeeded)
            else:
                self._logger.warning(
                    "transactions_partially_confirmed",
                    attempted=report.attempted,
                    confirmed=report.succeeded,
                    pending=len(report.failed),
                    error=str(report.error),
                )
            return report

    async def confirm_all(self) -> PersistenceReport[ReviewedTransaction]:
        return await self.confirm(row.id for row in self.review.rows)

    def export_confirmed(self, path: str | Path) -> Path:
        """Write confirmed rows to a spreadsheet.

        Raises:
            InputError: There are no confirmed rows; nothing is written.
        """
        rows = self.review.confirmed()
        if not rows:
            raise InputError("There are no confirmed transactions to export")

        records = [
            {
                "Date": row.raw.date.isoformat() if row.raw.date else "",
                "Description": row.raw.matching_text,
                "Amount": float(row.raw.amount),
                "Entity": row.matched_entity_name or "",
                "Account": row.matched_account_name or "",
                "Memo": row.raw.memo or "",
            }
            for row in rows
        ]
        return spreadsheet.write_rows(path, records, EXPORT_COLUMNS)

    # === Interlinking ===

    async def run_interlink(self) -> PersistenceReport[Link]:
        """Link every vendor and customer to its default account.

        Raises:
            InterlinkError: Links could not be computed; nothing was written.
            OperationInProgressError: Interlinking is already running.
        """
        async with self._exclusive(_INTERLINK, "interlink"):
            return await self.interlink.run()

    async def link_entity(self, kind: EntityKind, entity_id: str, account_id: str) -> Link:
        """Manually link one vendor or customer to an account."""
        async with self._exclusive(_INTERLINK, "link"):
            if kind is EntityKind.VENDOR:
                entity = self.entities.vendor(entity_id)
            elif kind is EntityKind.CUSTOMER:
                entity = self.entities.customer(entity_id)
            else:
                raise InterlinkError("Only vendors and customers can be linked to an account")
            if entity is None:
                raise InterlinkError(f"No {kind.value} with id '{entity_id}'")
            return await self.interlink.link(entity, account_id)

    # === Chart of accounts ===

    async def suggest_chart_of_accounts(self, industry: str) -> list[SuggestedAccount]:
        return await self.coa_generator.suggest(industry)

    def _account_writes(self, account: ChartOfAccount) -> list[WriteOp]:
        path = self.scope.document(CHART_OF_ACCOUNTS, account.id)
        return [WriteOp.set(path, mappers.account_to_document(account))]

    def _cache_accounts(self, accounts: list[ChartOfAccount]) -> None:
        for account in accounts:
            self.entities.upsert(account)

    async def seed_chart_of_accounts(self, industry: str) -> PersistenceReport[ChartOfAccount]:
        """Create a suggested starting chart of accounts for the company."""
        suggestions = await self.suggest_chart_of_accounts(industry)
        accounts = [to_chart_of_account(s, self.scope.company_id) for s in suggestions]
        report = await self.coordinator.persist(
            accounts, self._account_writes, on_batch_committed=self._cache_accounts
        )
        self._logger.info(
            "chart_of_accounts_seeded",
            industry=industry,
            created=report.succeeded,
            failed=len(report.failed),
        )
        return report
