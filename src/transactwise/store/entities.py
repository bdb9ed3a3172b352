"""In-memory cache of one company's vendors, customers and accounts."""

import asyncio
from dataclasses import dataclass, field

import structlog

from transactwise.models import ChartOfAccount, Customer, EntityKind, Record, Vendor
from transactwise.store import mappers
from transactwise.store.documents import (
    CHART_OF_ACCOUNTS,
    CUSTOMERS,
    VENDORS,
    CompanyScope,
    DocumentStore,
    WriteOp,
)

logger = structlog.get_logger(__name__)

_COLLECTIONS = {
    EntityKind.VENDOR: VENDORS,
    EntityKind.CUSTOMER: CUSTOMERS,
    EntityKind.ACCOUNT: CHART_OF_ACCOUNTS,
}


def collection_for(kind: EntityKind) -> str:
    return _COLLECTIONS[kind]


@dataclass(frozen=True)
class EntitySnapshot:
    """Read-only view of the entity collections at a point in time."""

    vendors: tuple[Vendor, ...] = ()
    customers: tuple[Customer, ...] = ()
    accounts: tuple[ChartOfAccount, ...] = ()
    _vendor_index: dict[str, Vendor] = field(default_factory=dict, repr=False, compare=False)
    _customer_index: dict[str, Customer] = field(default_factory=dict, repr=False, compare=False)
    _account_index: dict[str, ChartOfAccount] = field(
        default_factory=dict, repr=False, compare=False
    )

    @classmethod
    def build(
        cls,
        vendors: list[Vendor] | tuple[Vendor, ...] = (),
        customers: list[Customer] | tuple[Customer, ...] = (),
        accounts: list[ChartOfAccount] | tuple[ChartOfAccount, ...] = (),
    ) -> "EntitySnapshot":
        return cls(
            vendors=tuple(vendors),
            customers=tuple(customers),
            accounts=tuple(accounts),
            _vendor_index={v.id: v for v in vendors},
            _customer_index={c.id: c for c in customers},
            _account_index={a.id: a for a in accounts},
        )

    def vendor(self, vendor_id: str | None) -> Vendor | None:
        return self._vendor_index.get(vendor_id) if vendor_id else None

    def customer(self, customer_id: str | None) -> Customer | None:
        return self._customer_index.get(customer_id) if customer_id else None

    def account(self, account_id: str | None) -> ChartOfAccount | None:
        return self._account_index.get(account_id) if account_id else None

    def default_account_for(self, entity: Vendor | Customer | None) -> ChartOfAccount | None:
        """Resolve an entity's default-account link; a dangling link is no link."""
        if entity is None:
            return None
        return self.account(entity.default_account_id)


class EntityStore:
    """Authoritative in-memory copy of one company's entity collections.

    The cache is whole-collection with no eviction. ``upsert`` and ``remove``
    must follow every successful durable write so the cache matches storage
    for the rest of the session.
    """

    def __init__(self, documents: DocumentStore, scope: CompanyScope):
        self._documents = documents
        self.scope = scope
        self._vendors: dict[str, Vendor] = {}
        self._customers: dict[str, Customer] = {}
        self._accounts: dict[str, ChartOfAccount] = {}
        self._logger = logger.bind(company_id=scope.company_id)

    async def load(self) -> EntitySnapshot:
        """Bulk-read all three collections, replacing the cache."""
        vendor_docs, customer_docs, account_docs = await asyncio.gather(
            self._documents.list_documents(self.scope.collection(VENDORS)),
            self._documents.list_documents(self.scope.collection(CUSTOMERS)),
            self._documents.list_documents(self.scope.collection(CHART_OF_ACCOUNTS)),
        )
        company_id = self.scope.company_id
        self._vendors = {
            d["id"]: mappers.vendor_from_document(d, company_id) for d in vendor_docs
        }
        self._customers = {
            d["id"]: mappers.customer_from_document(d, company_id) for d in customer_docs
        }
        self._accounts = {
            d["id"]: mappers.account_from_document(d, company_id) for d in account_docs
        }
        self._logger.info(
            "entities_loaded",
            vendors=len(self._vendors),
            customers=len(self._customers),
            accounts=len(self._accounts),
        )
        return self.snapshot()

    @property
    def documents(self) -> DocumentStore:
        return self._documents

    @property
    def vendors(self) -> list[Vendor]:
        return list(self._vendors.values())

    @property
    def customers(self) -> list[Customer]:
        return list(self._customers.values())

    @property
    def accounts(self) -> list[ChartOfAccount]:
        return list(self._accounts.values())

    def snapshot(self) -> EntitySnapshot:
        return EntitySnapshot.build(self.vendors, self.customers, self.accounts)

    def vendor(self, vendor_id: str) -> Vendor | None:
        return self._vendors.get(vendor_id)

    def customer(self, customer_id: str) -> Customer | None:
        return self._customers.get(customer_id)

    def account(self, account_id: str) -> ChartOfAccount | None:
        return self._accounts.get(account_id)

    def upsert(self, record: Record) -> None:
        """Insert or replace a record in the cache."""
        if isinstance(record, Vendor):
            self._vendors[record.id] = record
        elif isinstance(record, Customer):
            self._customers[record.id] = record
        else:
            self._accounts[record.id] = record

    def remove(self, record_id: str) -> None:
        """Drop a record from the cache; unknown ids are ignored."""
        for bucket in (self._vendors, self._customers, self._accounts):
            bucket.pop(record_id, None)

    # === Durable write-through ===

    async def save(self, record: Record) -> None:
        """Persist a record in full, then update the cache."""
        path = self.scope.document(collection_for(record.kind), record.id)
        await self._documents.commit([WriteOp.set(path, mappers.record_to_document(record))])
        self.upsert(record)
        self._logger.info("entity_saved", kind=record.kind.value, entity_id=record.id)

    async def delete(self, kind: EntityKind, record_id: str) -> None:
        """Delete a record from storage, then from the cache.

        Links pointing at the deleted record are left in place and resolve
        to nothing on read.
        """
        await self._documents.delete_document(self.scope.document(collection_for(kind), record_id))
        self.remove(record_id)
        self._logger.info("entity_deleted", kind=kind.value, entity_id=record_id)
