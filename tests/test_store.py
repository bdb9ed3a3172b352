"""Tests for the document store contract, mappers and entity cache."""

import pytest

from transactwise.models import ChartOfAccount, EntityKind, Vendor
from transactwise.store import mappers
from transactwise.store.documents import (
    CHART_OF_ACCOUNTS,
    VENDORS,
    CompanyScope,
    InMemoryDocumentStore,
    WriteOp,
    new_document_id,
)
from transactwise.store.entities import EntitySnapshot, EntityStore


class TestCompanyScope:
    """Tests for company-scoped paths."""

    def test_paths(self):
        """Test collection and document paths."""
        scope = CompanyScope("u1", "c1")

        assert scope.collection(VENDORS) == "users/u1/companies/c1/vendors"
        assert scope.document(CHART_OF_ACCOUNTS, "a1") == (
            "users/u1/companies/c1/chartOfAccounts/a1"
        )

    def test_new_document_id(self):
        """Test generated ids are 20 characters and unique."""
        assert len(new_document_id()) == 20
        assert new_document_id() != new_document_id()


class TestInMemoryDocumentStore:
    """Tests for the in-memory document store."""

    @pytest.mark.asyncio
    async def test_create_get_and_list(self):
        """Test basic document round trips."""
        store = InMemoryDocumentStore()

        document_id = await store.create_document("things", {"name": "a"})

        assert await store.get_document(f"things/{document_id}") == {"id": document_id, "name": "a"}
        assert await store.list_documents("things") == [{"id": document_id, "name": "a"}]
        assert await store.get_document("things/missing") is None

    @pytest.mark.asyncio
    async def test_merge_keeps_other_fields(self):
        """Test that merge writes only the given fields."""
        store = InMemoryDocumentStore()
        store.seed("things", [{"id": "t1", "name": "a", "size": 1}])

        await store.merge_document("things/t1", {"size": 2})

        assert await store.get_document("things/t1") == {"id": "t1", "name": "a", "size": 2}

    @pytest.mark.asyncio
    async def test_commit_applies_all_writes(self):
        """Test set, merge and delete in one batch."""
        store = InMemoryDocumentStore()
        store.seed("things", [{"id": "t1", "name": "a"}, {"id": "t2", "name": "b"}])

        await store.commit([
            WriteOp.set("things/t3", {"name": "c"}),
            WriteOp.merge("things/t1", {"flag": True}),
            WriteOp.delete("things/t2"),
        ])

        documents = {d["id"]: d for d in await store.list_documents("things")}
        assert set(documents) == {"t1", "t3"}
        assert documents["t1"]["flag"] is True
        assert store.commit_count == 1

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self):
        """Test that callers cannot mutate stored data."""
        store = InMemoryDocumentStore()
        store.seed("things", [{"id": "t1", "tags": ["x"]}])

        document = await store.get_document("things/t1")
        document["tags"].append("y")

        assert (await store.get_document("things/t1"))["tags"] == ["x"]


class TestMappers:
    """Tests for document mapping."""

    def test_vendor_round_trip(self):
        """Test vendor document mapping both ways."""
        vendor = Vendor(
            id="v1",
            company_id="c1",
            name="Staples",
            email="ap@staples.com",
            default_expense_account="Office Supplies",
            default_expense_account_id="a1",
        )

        document = mappers.vendor_to_document(vendor)

        assert document["vendorName"] == "Staples"
        assert document["defaultExpenseAccountId"] == "a1"
        assert mappers.vendor_from_document({"id": "v1", **document}, "c1") == vendor

    def test_account_from_sparse_document(self):
        """Test that missing and blank fields map to None."""
        account = mappers.account_from_document(
            {"id": "a1", "accountName": "Travel", "subAccountName": "  "}, "c1"
        )

        assert account == ChartOfAccount(id="a1", company_id="c1", account_name="Travel")
        assert account.has_sub_account is False

    def test_none_fields_are_not_written(self):
        """Test that unset optional fields are left out of documents."""
        document = mappers.account_to_document(
            ChartOfAccount(id="a1", company_id="c1", account_name="Rent")
        )

        assert document == {"companyId": "c1", "accountName": "Rent"}


class TestEntityStore:
    """Tests for the entity cache."""

    @pytest.mark.asyncio
    async def test_load(self, document_store, scope):
        """Test that load reads all three collections."""
        entities = EntityStore(document_store, scope)

        snapshot = await entities.load()

        assert len(snapshot.vendors) == 4
        assert len(snapshot.customers) == 2
        assert len(snapshot.accounts) == 6
        assert snapshot.vendor("v-starbucks").name == "Starbucks"

    @pytest.mark.asyncio
    async def test_lookups_miss_quietly(self, document_store, scope):
        """Test that missing ids resolve to None."""
        entities = EntityStore(document_store, scope)
        snapshot = await entities.load()

        assert entities.vendor("nope") is None
        assert snapshot.account(None) is None
        assert snapshot.customer("nope") is None

    @pytest.mark.asyncio
    async def test_dangling_default_link_is_no_link(self, document_store, scope):
        """Test that a default link to a deleted account resolves to None."""
        entities = EntityStore(document_store, scope)
        await entities.load()

        await entities.delete(EntityKind.ACCOUNT, "coa-meals")

        snapshot = entities.snapshot()
        vendor = snapshot.vendor("v-starbucks")
        assert vendor.default_expense_account_id == "coa-meals"
        assert snapshot.default_account_for(vendor) is None

    @pytest.mark.asyncio
    async def test_save_writes_through(self, document_store, scope):
        """Test that save persists and caches a record."""
        entities = EntityStore(document_store, scope)
        await entities.load()
        vendor = Vendor(id="v-new", company_id="company-1", name="New Vendor")

        await entities.save(vendor)

        assert entities.vendor("v-new") == vendor
        stored = await document_store.get_document(scope.document(VENDORS, "v-new"))
        assert stored["vendorName"] == "New Vendor"

    def test_snapshot_is_independent_of_later_upserts(self, vendors):
        """Test that snapshots are point-in-time views."""
        snapshot = EntitySnapshot.build(vendors)
        entities = EntityStore(InMemoryDocumentStore(), CompanyScope("u", "c"))
        entities.upsert(Vendor(id="v-x", company_id="c", name="X"))

        assert snapshot.vendor("v-x") is None
        assert entities.snapshot().vendor("v-x") is not None
