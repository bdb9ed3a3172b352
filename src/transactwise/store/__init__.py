"""Document storage and the in-memory entity cache."""

from transactwise.store.documents import (
    CHART_OF_ACCOUNTS,
    CUSTOMERS,
    TRANSACTIONS,
    VENDORS,
    CompanyScope,
    DocumentStore,
    InMemoryDocumentStore,
    WriteKind,
    WriteOp,
    new_document_id,
)
from transactwise.store.entities import EntitySnapshot, EntityStore, collection_for
from transactwise.store.firestore import FirestoreDocumentStore

__all__ = [
    # Contract
    "DocumentStore",
    "CompanyScope",
    "WriteOp",
    "WriteKind",
    "new_document_id",
    # Collections
    "VENDORS",
    "CUSTOMERS",
    "CHART_OF_ACCOUNTS",
    "TRANSACTIONS",
    # Implementations
    "InMemoryDocumentStore",
    "FirestoreDocumentStore",
    # Entity cache
    "EntityStore",
    "EntitySnapshot",
    "collection_for",
]
