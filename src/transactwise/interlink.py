"""Linking vendors and customers to their default chart-of-accounts rows.

Vendors and customers carry their default account as free text from import.
Interlinking turns that text into a weak, bidirectional reference: the
entity gets ``default*AccountId`` and the account gets ``default*Id``.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

import structlog

from transactwise.accounts import resolve_account_text
from transactwise.errors import InterlinkError, ReasoningServiceError
from transactwise.models import (
    ChartOfAccount,
    Customer,
    CustomerLink,
    Entity,
    Vendor,
    VendorLink,
)
from transactwise.persistence import BulkPersistenceCoordinator, PersistenceReport
from transactwise.prompts import INTERLINK_ACCOUNTS_SYSTEM_PROMPT, SUBMIT_ACCOUNT_LINKS_TOOL
from transactwise.reasoning import InterlinkAccountsResponse, ReasoningService
from transactwise.store import mappers
from transactwise.store.documents import CHART_OF_ACCOUNTS, CUSTOMERS, VENDORS, WriteOp
from transactwise.store.entities import EntitySnapshot, EntityStore

logger = structlog.get_logger(__name__)

Link = VendorLink | CustomerLink


@dataclass
class InterlinkResult:
    """Links computed for one interlink run."""

    vendor_links: list[VendorLink] = field(default_factory=list)
    customer_links: list[CustomerLink] = field(default_factory=list)

    @property
    def links(self) -> list[Link]:
        return [*self.vendor_links, *self.customer_links]

    def __len__(self) -> int:
        return len(self.vendor_links) + len(self.customer_links)


def _account_payload(accounts: Sequence[ChartOfAccount]) -> list[dict[str, Any]]:
    return [
        {
            "id": a.id,
            "accountName": a.account_name,
            "accountNumber": a.account_number,
            "subAccountName": a.sub_account_name,
            "subAccountNumber": a.sub_account_number,
        }
        for a in accounts
    ]


class InterlinkEngine:
    """Computes entity-to-account links and writes both sides atomically."""

    def __init__(
        self,
        reasoning: ReasoningService,
        entities: EntityStore,
        coordinator: BulkPersistenceCoordinator,
    ):
        self._reasoning = reasoning
        self._entities = entities
        self._coordinator = coordinator
        self._logger = logger.bind(company_id=entities.scope.company_id)

    # === Computing links ===

    async def compute_links(self, snapshot: EntitySnapshot) -> InterlinkResult:
        """Resolve every entity's default-account text to an account.

        Exact name or number matches are resolved locally (sub-account before
        parent account). Only the remaining entities with non-empty text go to
        the reasoning service. Entities whose text is empty or matches nothing
        are left out of the result.

        Raises:
            InterlinkError: The reasoning service failed or answered outside
                its schema.
        """
        result = InterlinkResult()
        unresolved_vendors: list[Vendor] = []
        unresolved_customers: list[Customer] = []

        for vendor in snapshot.vendors:
            if not vendor.default_account_text.strip():
                continue
            account = resolve_account_text(vendor.default_account_text, snapshot.accounts)
            if account:
                result.vendor_links.append(VendorLink(vendor.id, account.id))
            else:
                unresolved_vendors.append(vendor)

        for customer in snapshot.customers:
            if not customer.default_account_text.strip():
                continue
            account = resolve_account_text(customer.default_account_text, snapshot.accounts)
            if account:
                result.customer_links.append(CustomerLink(customer.id, account.id))
            else:
                unresolved_customers.append(customer)

        self._logger.info(
            "interlink_local_resolution",
            vendor_links=len(result.vendor_links),
            customer_links=len(result.customer_links),
            unresolved=len(unresolved_vendors) + len(unresolved_customers),
        )

        if (unresolved_vendors or unresolved_customers) and snapshot.accounts:
            inferred = await self._infer_links(unresolved_vendors, unresolved_customers, snapshot)
            result.vendor_links.extend(inferred.vendor_links)
            result.customer_links.extend(inferred.customer_links)

        return result

    async def _infer_links(
        self,
        vendors: Sequence[Vendor],
        customers: Sequence[Customer],
        snapshot: EntitySnapshot,
    ) -> InterlinkResult:
        payload = {
            "vendors": [
                {"id": v.id, "defaultExpenseAccount": v.default_expense_account} for v in vendors
            ],
            "customers": [
                {"id": c.id, "defaultRevenueAccount": c.default_revenue_account}
                for c in customers
            ],
            "chartOfAccounts": _account_payload(snapshot.accounts),
        }
        try:
            response = await self._reasoning.request(
                system_prompt=INTERLINK_ACCOUNTS_SYSTEM_PROMPT,
                title="Link these vendors and customers to the chart of accounts.",
                payload=payload,
                tool=SUBMIT_ACCOUNT_LINKS_TOOL,
                response_model=InterlinkAccountsResponse,
            )
        except ReasoningServiceError as e:
            raise InterlinkError(str(e), details=e.details) from e

        asked_vendors = {v.id for v in vendors}
        asked_customers = {c.id for c in customers}
        result = InterlinkResult()
        seen_vendors: set[str] = set()
        seen_customers: set[str] = set()

        for item in response.vendor_links:
            if item.vendor_id not in asked_vendors or item.vendor_id in seen_vendors:
                continue
            if snapshot.account(item.chart_of_account_id) is None:
                self._logger.warning(
                    "unknown_account_dropped",
                    vendor_id=item.vendor_id,
                    chart_of_account_id=item.chart_of_account_id,
                )
                continue
            seen_vendors.add(item.vendor_id)
            result.vendor_links.append(VendorLink(item.vendor_id, item.chart_of_account_id))

        for item in response.customer_links:
            if item.customer_id not in asked_customers or item.customer_id in seen_customers:
                continue
            if snapshot.account(item.chart_of_account_id) is None:
                self._logger.warning(
                    "unknown_account_dropped",
                    customer_id=item.customer_id,
                    chart_of_account_id=item.chart_of_account_id,
                )
                continue
            seen_customers.add(item.customer_id)
            result.customer_links.append(CustomerLink(item.customer_id, item.chart_of_account_id))

        self._logger.info("interlink_inferred", links=len(result))
        return result

    # === Writing links ===

    def link_writes(self, link: Link) -> list[WriteOp]:
        """Merge writes for both sides of one link."""
        scope = self._entities.scope
        account_path = scope.document(CHART_OF_ACCOUNTS, link.chart_of_account_id)
        if isinstance(link, VendorLink):
            return [
                WriteOp.merge(
                    scope.document(VENDORS, link.vendor_id),
                    {mappers.VENDOR_ACCOUNT_LINK_FIELD: link.chart_of_account_id},
                ),
                WriteOp.merge(account_path, {mappers.ACCOUNT_VENDOR_LINK_FIELD: link.vendor_id}),
            ]
        return [
            WriteOp.merge(
                scope.document(CUSTOMERS, link.customer_id),
                {mappers.CUSTOMER_ACCOUNT_LINK_FIELD: link.chart_of_account_id},
            ),
            WriteOp.merge(account_path, {mappers.ACCOUNT_CUSTOMER_LINK_FIELD: link.customer_id}),
        ]

    def _apply_to_cache(self, links: list[Link]) -> None:
        for link in links:
            account = self._entities.account(link.chart_of_account_id)
            if isinstance(link, VendorLink):
                vendor = self._entities.vendor(link.vendor_id)
                if vendor:
                    self._entities.upsert(vendor.with_default_account(link.chart_of_account_id))
                if account:
                    self._entities.upsert(replace(account, default_vendor_id=link.vendor_id))
            else:
                customer = self._entities.customer(link.customer_id)
                if customer:
                    self._entities.upsert(customer.with_default_account(link.chart_of_account_id))
                if account:
                    self._entities.upsert(replace(account, default_customer_id=link.customer_id))

    async def apply(self, result: InterlinkResult) -> PersistenceReport[Link]:
        """Persist links through the coordinator; the cache follows each batch."""
        report = await self._coordinator.persist(
            result.links, self.link_writes, on_batch_committed=self._apply_to_cache
        )
        if report.complete:
            self._logger.info("interlink_applied", links=report.succeeded)
        else:
            self._logger.warning(
                "interlink_partially_applied",
                attempted=report.attempted,
                succeeded=report.succeeded,
                failed=len(report.failed),
            )
        return report

    async def run(self) -> PersistenceReport[Link]:
        """Compute links over the current cache and persist them."""
        result = await self.compute_links(self._entities.snapshot())
        return await self.apply(result)

    async def link(self, entity: Entity, account_id: str) -> Link:
        """Manually link one vendor or customer to an account.

        Raises:
            InterlinkError: The account does not exist.
            DocumentStoreError: The write failed; nothing was changed.
        """
        if self._entities.account(account_id) is None:
            raise InterlinkError(f"Chart of accounts entry '{account_id}' does not exist")

        link: Link
        if isinstance(entity, Vendor):
            link = VendorLink(entity.id, account_id)
        else:
            link = CustomerLink(entity.id, account_id)

        await self._entities.documents.commit(self.link_writes(link))
        self._apply_to_cache([link])
        self._logger.info(
            "entity_linked", kind=entity.kind.value, entity_id=entity.id, account_id=account_id
        )
        return link
