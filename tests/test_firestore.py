"""Tests for the Firestore REST document store."""

from datetime import date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from transactwise.errors import DocumentStoreError
from transactwise.store.documents import WriteOp
from transactwise.store.firestore import (
    FirestoreDocumentStore,
    decode_fields,
    encode_fields,
    encode_value,
)

ROOT = "projects/demo/databases/(default)/documents"


@pytest.fixture
def store():
    """Create a FirestoreDocumentStore instance."""
    return FirestoreDocumentStore(project_id="demo", token="id-token")


def make_response(status_code: int = 200, body: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body
    response.text = ""
    return response


def mock_http(store, *responses):
    http = AsyncMock()
    http.request = AsyncMock(side_effect=list(responses))
    return patch.object(store, "_get_client", AsyncMock(return_value=http)), http


class TestValueEncoding:
    """Tests for Firestore value encoding."""

    def test_encode_scalars(self):
        """Test scalar encodings."""
        assert encode_value(None) == {"nullValue": None}
        assert encode_value(True) == {"booleanValue": True}
        assert encode_value(7) == {"integerValue": "7"}
        assert encode_value(Decimal("-5.75")) == {"doubleValue": -5.75}
        assert encode_value("x") == {"stringValue": "x"}
        assert encode_value(date(2024, 3, 1)) == {"stringValue": "2024-03-01"}

    def test_naive_datetime_is_utc(self):
        """Test that naive datetimes are sent as UTC timestamps."""
        encoded = encode_value(datetime(2024, 3, 1, 12, 0))

        assert encoded == {"timestampValue": "2024-03-01T12:00:00+00:00"}

    def test_nested_values_decode_back(self):
        """Test maps and arrays."""
        data = {"name": "Travel", "tags": ["a", 1], "meta": {"active": False}}

        assert decode_fields(encode_fields(data)) == data

    def test_unknown_value_type(self):
        """Test that unsupported values raise."""
        with pytest.raises(DocumentStoreError):
            decode_fields({"x": {"geoPointValue": {}}})


class TestInit:
    """Tests for FirestoreDocumentStore initialization."""

    def test_requires_project(self):
        """Test that a project id is required."""
        with patch("transactwise.store.firestore.get_settings") as mock_settings:
            mock_settings.return_value.firestore_project_id = None
            with pytest.raises(DocumentStoreError, match="FIRESTORE_PROJECT_ID"):
                FirestoreDocumentStore()

    def test_document_name(self, store):
        """Test resource naming."""
        assert store.document_name("/users/u/companies/c/vendors/v1") == (
            f"{ROOT}/users/u/companies/c/vendors/v1"
        )

    def test_bearer_token_header(self, store):
        """Test the authorization header."""
        assert store._get_headers()["Authorization"] == "Bearer id-token"


class TestReads:
    """Tests for document reads."""

    @pytest.mark.asyncio
    async def test_list_follows_page_tokens(self, store):
        """Test that listing reads every page."""
        page_one = make_response(body={
            "documents": [{"name": f"{ROOT}/things/a", "fields": {"n": {"integerValue": "1"}}}],
            "nextPageToken": "tok",
        })
        page_two = make_response(body={
            "documents": [{"name": f"{ROOT}/things/b", "fields": {"n": {"integerValue": "2"}}}],
        })
        patcher, http = mock_http(store, page_one, page_two)

        with patcher:
            documents = await store.list_documents("things")

        assert documents == [{"id": "a", "n": 1}, {"id": "b", "n": 2}]
        assert http.request.call_args_list[1].kwargs["params"]["pageToken"] == "tok"

    @pytest.mark.asyncio
    async def test_get_missing_document(self, store):
        """Test that 404 on get returns None."""
        patcher, _ = mock_http(store, make_response(404, {"error": {}}))

        with patcher:
            assert await store.get_document("things/missing") is None

    @pytest.mark.asyncio
    async def test_empty_collection(self, store):
        """Test that a collection without documents lists as empty."""
        patcher, _ = mock_http(store, make_response(body={}))

        with patcher:
            assert await store.list_documents("things") == []


class TestWrites:
    """Tests for document writes."""

    @pytest.mark.asyncio
    async def test_merge_uses_update_mask(self, store):
        """Test that merge only touches the given fields."""
        patcher, http = mock_http(store, make_response(body={}))

        with patcher:
            await store.merge_document("vendors/v1", {"defaultExpenseAccountId": "a1"})

        kwargs = http.request.call_args.kwargs
        assert kwargs["method"] == "PATCH"
        assert kwargs["params"] == [("updateMask.fieldPaths", "defaultExpenseAccountId")]
        assert kwargs["json"] == {
            "fields": {"defaultExpenseAccountId": {"stringValue": "a1"}}
        }

    @pytest.mark.asyncio
    async def test_commit_encodes_writes(self, store):
        """Test that a batch is sent as one commit request."""
        patcher, http = mock_http(store, make_response(body={"writeResults": []}))

        with patcher:
            await store.commit([
                WriteOp.set("things/a", {"n": 1}),
                WriteOp.merge("things/b", {"m": "x"}),
                WriteOp.delete("things/c"),
            ])

        kwargs = http.request.call_args.kwargs
        assert kwargs["url"] == f"/{ROOT}:commit"
        writes = kwargs["json"]["writes"]
        assert writes[0] == {"update": {"name": f"{ROOT}/things/a", "fields": {"n": {"integerValue": "1"}}}}
        assert writes[1]["updateMask"] == {"fieldPaths": ["m"]}
        assert writes[2] == {"delete": f"{ROOT}/things/c"}

    @pytest.mark.asyncio
    async def test_empty_commit_sends_nothing(self, store):
        """Test that an empty batch is a no-op."""
        patcher, http = mock_http(store)

        with patcher:
            await store.commit([])

        http.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_commit(self, store):
        """Test that an error status raises with details and is not retried."""
        patcher, http = mock_http(store, make_response(409, {"error": {"status": "ABORTED"}}))

        with patcher, pytest.raises(DocumentStoreError) as exc_info:
            await store.commit([WriteOp.set("things/a", {"n": 1})])

        assert exc_info.value.status_code == 409
        assert exc_info.value.details == {"error": {"status": "ABORTED"}}
        assert http.request.call_count == 1

    @pytest.mark.asyncio
    async def test_network_error(self, store):
        """Test that transport errors become DocumentStoreError."""
        patcher, _ = mock_http(store, httpx.ConnectError("unreachable"))

        with patcher, pytest.raises(DocumentStoreError, match="unreachable"):
            await store.delete_document("things/a")
