"""
Unit tests for QdrantIndexBackend functionality.

Tests lazy client construction, collection and payload index creation,
bulk requests with per-item rejections, paged key lookup and statistics.
"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock, patch

import pytest

from qdrant_client.models import PayloadSchemaType, TextIndexParams, TokenizerType

from index_sync.models.documents import IndexAction
from index_sync.models.fields import RemoteDataType, RemoteField
from index_sync.storage.client import (
    QdrantIndexBackend, ValueCoercionError, coerce_value, get_payload_index_schema
)
from index_sync.storage.schemas import build_document, build_index_schema
from index_sync.storage.utils import document_key_to_point_id


@pytest.fixture
def mock_qdrant():
    """Patch the Qdrant client class"""
    with patch("index_sync.storage.client.QdrantClient") as mock_cls:
        yield mock_cls


@pytest.fixture
def backend(mock_qdrant):
    return QdrantIndexBackend(url="http://localhost:6333", api_key="secret", timeout=30)


@pytest.fixture
def schema(field_groups):
    return build_index_schema("test-index", field_groups)


class TestClientLifecycle:
    """Test lazy client handle"""

    def test_client_not_built_eagerly(self, backend, mock_qdrant):
        assert backend.is_client_created is False
        mock_qdrant.assert_not_called()

    def test_client_built_once_across_threads(self, backend, mock_qdrant):
        """Test concurrent first use constructs exactly one client"""
        with ThreadPoolExecutor(max_workers=8) as pool:
            clients = list(pool.map(lambda _: backend.client, range(32)))

        mock_qdrant.assert_called_once_with(url="http://localhost:6333", api_key="secret", timeout=30)
        assert all(c is clients[0] for c in clients)

    @pytest.mark.asyncio
    async def test_close_unbuilt_client(self, backend, mock_qdrant):
        await backend.close()

        mock_qdrant.assert_not_called()

    @pytest.mark.asyncio
    async def test_close_built_client_once(self, backend):
        client = backend.client

        await backend.close()
        await backend.close()

        client.close.assert_called_once()
        assert backend.is_client_created is False


class TestCollections:
    """Test collection management"""

    @pytest.mark.asyncio
    async def test_index_exists(self, backend):
        backend.client.collection_exists.return_value = True

        assert await backend.index_exists("test-index") is True
        backend.client.collection_exists.assert_called_once_with(collection_name="test-index")

    @pytest.mark.asyncio
    async def test_create_index(self, backend, schema):
        """Test a vectorless collection gets one payload index per field"""
        await backend.create_index(schema)

        backend.client.create_collection.assert_called_once_with(
            collection_name="test-index", vectors_config={}
        )
        calls = backend.client.create_payload_index.call_args_list
        indexed = {c.kwargs["field_name"]: c.kwargs["field_schema"] for c in calls}

        assert list(indexed) == schema.field_names
        assert indexed["z__NodeId"] == PayloadSchemaType.KEYWORD
        assert indexed["z__IndexType"] == PayloadSchemaType.KEYWORD
        assert indexed["updateDate"] == PayloadSchemaType.DATETIME
        assert indexed["sortOrder"] == PayloadSchemaType.INTEGER
        assert isinstance(indexed["title"], TextIndexParams)

    @pytest.mark.asyncio
    async def test_failed_create_rolled_back(self, backend, schema):
        backend.client.create_payload_index.side_effect = RuntimeError("bad field schema")

        with pytest.raises(RuntimeError, match="bad field schema"):
            await backend.create_index(schema)

        backend.client.delete_collection.assert_called_once_with(collection_name="test-index")
        assert backend.get_performance_metrics()["failed_requests"] == 1

    @pytest.mark.asyncio
    async def test_delete_index(self, backend):
        await backend.delete_index("test-index")

        backend.client.delete_collection.assert_called_once_with(collection_name="test-index")


class TestIndexDocuments:
    """Test bulk requests"""

    @pytest.mark.asyncio
    async def test_uploads_and_deletes(self, backend, schema):
        document = build_document("1054", {"title": "Home", "sortOrder": 3, "updateDate": "2024-01-02T03:04:05Z"}, "content")
        actions = [
            IndexAction.upload("1054", document),
            IndexAction.delete("99")
        ]

        result = await backend.index_documents(schema, actions)

        assert result.is_complete_success
        assert [r.key for r in result.results] == ["1054", "99"]

        upsert_kwargs = backend.client.upsert.call_args.kwargs
        (point,) = upsert_kwargs["points"]
        assert point.id == document_key_to_point_id("1054")
        assert point.payload["sortOrder"] == 3
        assert point.payload["updateDate"] == "2024-01-02T03:04:05+00:00"
        assert point.payload["z__NodeId"] == "1054"
        assert point.payload["z__IndexType"] == "content"

        delete_kwargs = backend.client.delete.call_args.kwargs
        assert delete_kwargs["points_selector"].points == [document_key_to_point_id("99")]

    @pytest.mark.asyncio
    async def test_invalid_values_rejected_per_item(self, backend, schema):
        """Test only the offending documents fail"""
        actions = [
            IndexAction.upload("1", build_document("1", {"sortOrder": "1"})),
            IndexAction.upload("2", build_document("2", {"sortOrder": "not a number"})),
            IndexAction.upload("3", build_document("3", {"unknownField": "x"})),
            IndexAction.upload("4", build_document("4", {"sortOrder": str(2 ** 40)})),
        ]

        result = await backend.index_documents(schema, actions)

        assert [r.key for r in result.succeeded] == ["1"]
        assert [r.key for r in result.failed] == ["2", "3", "4"]
        assert "unknownField" in result.failed[1].error
        assert len(backend.client.upsert.call_args.kwargs["points"]) == 1
        backend.client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_rejected_skips_upsert(self, backend, schema):
        actions = [IndexAction.upload("1", build_document("1", {"umbracoBytes": "big"}))]

        result = await backend.index_documents(schema, actions)

        assert len(result.failed) == 1
        backend.client.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_request(self, backend, schema):
        result = await backend.index_documents(schema, [])

        assert len(result) == 0
        assert backend.is_client_created is False

    @pytest.mark.asyncio
    async def test_request_error_propagates(self, backend, schema):
        backend.client.upsert.side_effect = ConnectionError("refused")

        with pytest.raises(ConnectionError):
            await backend.index_documents(schema, [IndexAction.upload("1", build_document("1", {}))])


class TestQueries:
    """Test key lookup and statistics"""

    @pytest.mark.asyncio
    async def test_find_keys_pages(self, backend, schema):
        backend.client.scroll.side_effect = [
            ([Mock(payload={"z__NodeId": "1"}), Mock(payload={"z__NodeId": "2"})], 12345),
            ([Mock(payload={"z__NodeId": "3"}), Mock(payload=None)], None),
        ]

        keys = await backend.find_keys(schema, "z__IndexType", "content")

        assert keys == ["1", "2", "3"]
        calls = backend.client.scroll.call_args_list
        assert calls[0].kwargs["offset"] is None
        assert calls[1].kwargs["offset"] == 12345
        assert calls[0].kwargs["with_payload"] == ["z__NodeId"]
        condition = calls[0].kwargs["scroll_filter"].must[0]
        assert condition.key == "z__IndexType"
        assert condition.match.value == "content"

    @pytest.mark.asyncio
    async def test_counts(self, backend):
        backend.client.count.return_value = Mock(count=42)
        backend.client.get_collection.return_value = Mock(payload_schema={"a": 1, "b": 2})

        assert await backend.count_documents("test-index") == 42
        assert await backend.get_field_count("test-index") == 2
        backend.client.count.assert_called_once_with(collection_name="test-index", exact=True)


class TestCoercion:
    """Test string-encoded value conversion"""

    def field(self, data_type, name="value"):
        return RemoteField(name=name, data_type=data_type)

    def test_strings_unchanged(self):
        assert coerce_value(self.field(RemoteDataType.STRING), " a b ") == " a b "

    def test_numbers(self):
        assert coerce_value(self.field(RemoteDataType.INT32), " 12 ") == 12
        assert coerce_value(self.field(RemoteDataType.INT64), str(2 ** 40)) == 2 ** 40
        assert coerce_value(self.field(RemoteDataType.DOUBLE), "1.5") == 1.5

    def test_empty_value_is_null(self):
        assert coerce_value(self.field(RemoteDataType.INT32), "") is None

    def test_naive_datetime_assumed_utc(self):
        value = coerce_value(self.field(RemoteDataType.DATE_TIME_OFFSET), "2024-05-01T10:00:00")
        assert value == "2024-05-01T10:00:00+00:00"

    @pytest.mark.parametrize("data_type,value", [
        (RemoteDataType.INT32, str(2 ** 31)),
        (RemoteDataType.INT64, "1.5"),
        (RemoteDataType.DOUBLE, "abc"),
        (RemoteDataType.DATE_TIME_OFFSET, "yesterday"),
        (RemoteDataType.DOUBLE, "nan"),
        (RemoteDataType.DOUBLE, "inf"),
        (RemoteDataType.DOUBLE, "-Infinity"),
    ])
    def test_invalid_values(self, data_type, value):
        with pytest.raises(ValueCoercionError):
            coerce_value(self.field(data_type), value)

    def test_chinese_analyzer_uses_multilingual_tokenizer(self):
        field = RemoteField(
            name="body", data_type=RemoteDataType.STRING, is_searchable=True, analyzer="zh-Hans.lucene"
        )
        assert get_payload_index_schema(field).tokenizer == TokenizerType.MULTILINGUAL

    def test_unsearchable_string_is_keyword(self):
        field = RemoteField(name="raw", data_type=RemoteDataType.STRING)
        assert get_payload_index_schema(field) == PayloadSchemaType.KEYWORD
