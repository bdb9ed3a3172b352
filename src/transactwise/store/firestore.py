"""Firestore REST client implementing the DocumentStore contract."""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

import httpx
import structlog

from transactwise.config import get_settings
from transactwise.errors import DocumentStoreError
from transactwise.store.documents import WriteKind, WriteOp

logger = structlog.get_logger(__name__)

FIRESTORE_API_URL = "https://firestore.googleapis.com/v1"

# Firestore caps list pages at 300 documents
_PAGE_SIZE = 300


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore REST ``Value``."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, (float, Decimal)):
        return {"doubleValue": float(value)}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return {"timestampValue": value.isoformat()}
    if isinstance(value, date):
        return {"stringValue": value.isoformat()}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    return {"stringValue": str(value)}


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(value: dict[str, Any]) -> Any:
    """Decode a Firestore REST ``Value`` into a Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return value["timestampValue"]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "referenceValue" in value:
        return value["referenceValue"]
    raise DocumentStoreError("Unsupported Firestore value", details=value)


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


class FirestoreDocumentStore:
    """Async Firestore client over the REST API.

    Authenticates with a bearer token (an ID token or OAuth access token
    obtained by the caller). Requests are not retried; a failure surfaces as
    DocumentStoreError and the user repeats the action.
    """

    def __init__(
        self,
        project_id: str | None = None,
        database: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        base_url: str = FIRESTORE_API_URL,
    ):
        settings = get_settings()
        self._project_id = project_id or settings.firestore_project_id
        if not self._project_id:
            raise DocumentStoreError("FIRESTORE_PROJECT_ID is not configured")
        self._database = database or settings.firestore_database
        if token is None and settings.firestore_token is not None:
            token = settings.firestore_token.get_secret_value()
        self._token = token
        self._timeout = timeout or settings.firestore_timeout
        self.base_url = base_url.rstrip("/")

        self._client: httpx.AsyncClient | None = None
        self._logger = logger.bind(project=self._project_id, database=self._database)

    @property
    def database_name(self) -> str:
        return f"projects/{self._project_id}/databases/{self._database}"

    @property
    def documents_root(self) -> str:
        return f"{self.database_name}/documents"

    def document_name(self, path: str) -> str:
        """Full resource name for a relative document path."""
        return f"{self.documents_root}/{path.strip('/')}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FirestoreDocumentStore":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | list[tuple[str, Any]] | None = None,
        json: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> dict[str, Any] | None:
        client = await self._get_client()
        try:
            response = await client.request(
                method=method,
                url=f"/{path}",
                params=params,
                json=json,
                headers=self._get_headers(),
            )
        except httpx.RequestError as e:
            self._logger.error("request_failed", method=method, path=path, error=str(e))
            raise DocumentStoreError(f"Request failed: {e}") from e

        if response.status_code == 404 and allow_not_found:
            return None

        if response.status_code >= 400:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {"raw": response.text[:500] if response.text else "empty response"}
            self._logger.error(
                "request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise DocumentStoreError(
                f"Firestore error: {response.status_code}",
                status_code=response.status_code,
                details=error_detail,
            )

        return response.json() if response.content else {}

    def _to_document(self, resource: dict[str, Any]) -> dict[str, Any]:
        document_id = resource["name"].rsplit("/", 1)[-1]
        return {"id": document_id, **decode_fields(resource.get("fields", {}))}

    async def list_documents(self, collection_path: str) -> list[dict[str, Any]]:
        """Read every document in a collection, following page tokens."""
        documents: list[dict[str, Any]] = []
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {"pageSize": _PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            result = await self._request(
                "GET", self.document_name(collection_path), params=params
            ) or {}
            documents.extend(self._to_document(doc) for doc in result.get("documents", []))
            page_token = result.get("nextPageToken")
            if not page_token:
                break

        self._logger.debug("collection_listed", collection=collection_path, count=len(documents))
        return documents

    async def get_document(self, path: str) -> dict[str, Any] | None:
        result = await self._request("GET", self.document_name(path), allow_not_found=True)
        return self._to_document(result) if result else None

    async def create_document(self, collection_path: str, data: dict[str, Any]) -> str:
        result = await self._request(
            "POST",
            self.document_name(collection_path),
            json={"fields": encode_fields(data)},
        )
        document_id = (result or {}).get("name", "").rsplit("/", 1)[-1]
        if not document_id:
            raise DocumentStoreError("Create response did not include a document name")
        return document_id

    async def merge_document(self, path: str, data: dict[str, Any]) -> None:
        params = [("updateMask.fieldPaths", key) for key in data]
        await self._request(
            "PATCH",
            self.document_name(path),
            params=params,
            json={"fields": encode_fields(data)},
        )

    async def delete_document(self, path: str) -> None:
        await self._request("DELETE", self.document_name(path))

    def _encode_write(self, write: WriteOp) -> dict[str, Any]:
        name = self.document_name(write.path)
        if write.kind is WriteKind.DELETE:
            return {"delete": name}
        encoded: dict[str, Any] = {"update": {"name": name, "fields": encode_fields(write.data)}}
        if write.kind is WriteKind.MERGE:
            encoded["updateMask"] = {"fieldPaths": list(write.data)}
        return encoded

    async def commit(self, writes: list[WriteOp]) -> None:
        """Commit writes atomically; Firestore applies all of them or none."""
        if not writes:
            return
        await self._request(
            "POST",
            f"{self.documents_root}:commit",
            json={"writes": [self._encode_write(w) for w in writes]},
        )
        self._logger.info("batch_committed", writes=len(writes))
