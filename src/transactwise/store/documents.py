"""Document store contract and an in-memory implementation."""

import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import structlog

from transactwise.errors import DocumentStoreError

logger = structlog.get_logger(__name__)

VENDORS = "vendors"
CUSTOMERS = "customers"
CHART_OF_ACCOUNTS = "chartOfAccounts"
TRANSACTIONS = "transactions"


def new_document_id() -> str:
    """Generate a 20 character document id, the same length Firestore uses."""
    return uuid.uuid4().hex[:20]


@dataclass(frozen=True)
class CompanyScope:
    """Identifies one company's collections for one owning user."""

    user_id: str
    company_id: str

    @property
    def root(self) -> str:
        return f"users/{self.user_id}/companies/{self.company_id}"

    def collection(self, name: str) -> str:
        return f"{self.root}/{name}"

    def document(self, collection: str, document_id: str) -> str:
        return f"{self.root}/{collection}/{document_id}"


class WriteKind(str, Enum):
    SET = "set"
    MERGE = "merge"
    DELETE = "delete"


@dataclass(frozen=True)
class WriteOp:
    """A single write inside an atomic batch."""

    kind: WriteKind
    path: str
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def set(cls, path: str, data: dict[str, Any]) -> "WriteOp":
        return cls(WriteKind.SET, path, data)

    @classmethod
    def merge(cls, path: str, data: dict[str, Any]) -> "WriteOp":
        return cls(WriteKind.MERGE, path, data)

    @classmethod
    def delete(cls, path: str) -> "WriteOp":
        return cls(WriteKind.DELETE, path)


class DocumentStore(Protocol):
    """Operations the application needs from a document database.

    Documents are plain dicts; ``list_documents`` and ``get_document`` add the
    document id under the ``"id"`` key.
    """

    async def list_documents(self, collection_path: str) -> list[dict[str, Any]]: ...

    async def get_document(self, path: str) -> dict[str, Any] | None: ...

    async def create_document(self, collection_path: str, data: dict[str, Any]) -> str: ...

    async def merge_document(self, path: str, data: dict[str, Any]) -> None: ...

    async def delete_document(self, path: str) -> None: ...

    async def commit(self, writes: list[WriteOp]) -> None: ...


def _split_path(path: str) -> tuple[str, str]:
    collection_path, _, document_id = path.rpartition("/")
    if not collection_path or not document_id:
        raise DocumentStoreError(f"Invalid document path: {path}")
    return collection_path, document_id


class InMemoryDocumentStore:
    """Dict-backed document store with all-or-nothing batch commits.

    Used for tests and local runs; behaves like the remote store for the
    operations the application relies on, including merge semantics.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.commit_count = 0

    def seed(self, collection_path: str, documents: list[dict[str, Any]]) -> None:
        """Insert documents directly; each must carry an ``id``."""
        bucket = self._collections.setdefault(collection_path, {})
        for document in documents:
            data = dict(document)
            document_id = data.pop("id")
            bucket[document_id] = data

    async def list_documents(self, collection_path: str) -> list[dict[str, Any]]:
        bucket = self._collections.get(collection_path, {})
        return [{"id": doc_id, **copy.deepcopy(data)} for doc_id, data in bucket.items()]

    async def get_document(self, path: str) -> dict[str, Any] | None:
        collection_path, document_id = _split_path(path)
        data = self._collections.get(collection_path, {}).get(document_id)
        if data is None:
            return None
        return {"id": document_id, **copy.deepcopy(data)}

    async def create_document(self, collection_path: str, data: dict[str, Any]) -> str:
        document_id = new_document_id()
        self._collections.setdefault(collection_path, {})[document_id] = copy.deepcopy(data)
        return document_id

    async def merge_document(self, path: str, data: dict[str, Any]) -> None:
        await self.commit([WriteOp.merge(path, data)])

    async def delete_document(self, path: str) -> None:
        await self.commit([WriteOp.delete(path)])

    async def commit(self, writes: list[WriteOp]) -> None:
        # Apply against a copy so a bad write leaves the store untouched
        staged = copy.deepcopy(self._collections)
        for write in writes:
            collection_path, document_id = _split_path(write.path)
            bucket = staged.setdefault(collection_path, {})
            if write.kind is WriteKind.DELETE:
                bucket.pop(document_id, None)
            elif write.kind is WriteKind.SET:
                bucket[document_id] = copy.deepcopy(write.data)
            else:
                bucket.setdefault(document_id, {}).update(copy.deepcopy(write.data))

        self._collections = staged
        self.commit_count += 1
        logger.debug("batch_committed", writes=len(writes))
