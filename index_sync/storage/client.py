"""
Qdrant index backend for qdrant-index-sync.

Stores each remote index as a vectorless Qdrant collection: documents become
points whose payload holds the typed field values, and every schema field
gets a payload index matching its data type and analyzer.
"""

import asyncio
import logging
import math
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from qdrant_client import QdrantClient
from qdrant_client.models import (
    FieldCondition, Filter, MatchValue, PayloadSchemaType, PointStruct,
    TextIndexParams, TokenizerType
)
from qdrant_client.http.models.models import PointIdsList

from .base import BaseIndexBackend
from .utils import document_key_to_point_id
from ..models.documents import BatchResult, IndexAction, IndexActionType, ItemResult
from ..models.fields import AnalyzerName, IndexSchema, RemoteDataType, RemoteField

logger = logging.getLogger(__name__)


INT32_RANGE = (-2 ** 31, 2 ** 31 - 1)
INT64_RANGE = (-2 ** 63, 2 ** 63 - 1)

# Analyzers that keep the whole value as one token map to exact-match indexes
_KEYWORD_ANALYZERS = {AnalyzerName.WHITESPACE.value, AnalyzerName.KEYWORD.value}

_SCROLL_PAGE_SIZE = 1000


class ValueCoercionError(ValueError):
    """String-encoded value does not fit the field's remote data type"""
    pass


def coerce_value(field: RemoteField, value: str) -> Any:
    """
    Convert a string-encoded document value to its typed payload value.

    Empty values of non-string fields are stored as null.

    Raises:
        ValueCoercionError: If the value cannot be represented
    """
    if field.data_type == RemoteDataType.STRING:
        return value

    if value is None or value.strip() == "":
        return None

    try:
        if field.data_type in (RemoteDataType.INT32, RemoteDataType.INT64):
            number = int(value.strip())
            low, high = INT32_RANGE if field.data_type == RemoteDataType.INT32 else INT64_RANGE
            if not low <= number <= high:
                raise ValueCoercionError(
                    f"{field.name}: {number} out of range for {field.data_type.value}"
                )
            return number

        if field.data_type == RemoteDataType.DOUBLE:
            number = float(value.strip())
            # JSON payloads cannot carry nan or infinity
            if not math.isfinite(number):
                raise ValueCoercionError(
                    f"{field.name}: {value!r} is not a finite {field.data_type.value}"
                )
            return number

        if field.data_type == RemoteDataType.DATE_TIME_OFFSET:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.isoformat()

    except ValueCoercionError:
        raise
    except ValueError as e:
        raise ValueCoercionError(
            f"{field.name}: cannot convert {value!r} to {field.data_type.value}"
        ) from e

    raise ValueCoercionError(f"{field.name}: unsupported data type {field.data_type}")


def get_payload_index_schema(field: RemoteField) -> Union[PayloadSchemaType, TextIndexParams]:
    """Map a remote field to the Qdrant payload index that serves it"""
    if field.data_type == RemoteDataType.STRING:
        if field.is_key or not field.is_searchable or field.analyzer in _KEYWORD_ANALYZERS:
            return PayloadSchemaType.KEYWORD

        tokenizer = TokenizerType.WORD
        if field.analyzer == AnalyzerName.CHINESE_SIMPLIFIED.value:
            tokenizer = TokenizerType.MULTILINGUAL

        return TextIndexParams(
            type="text",
            tokenizer=tokenizer,
            min_token_len=1,
            max_token_len=40,
            lowercase=True
        )

    schema_type_map = {
        RemoteDataType.INT32: PayloadSchemaType.INTEGER,
        RemoteDataType.INT64: PayloadSchemaType.INTEGER,
        RemoteDataType.DOUBLE: PayloadSchemaType.FLOAT,
        RemoteDataType.DATE_TIME_OFFSET: PayloadSchemaType.DATETIME,
    }
    return schema_type_map[field.data_type]


class QdrantIndexBackend(BaseIndexBackend):
    """
    Remote search index on Qdrant.

    Features:
    - Lazily constructed client handle, built exactly once even under
      concurrent first use
    - Typed payload indexes derived from the index schema
    - Bulk upload/delete with per-item results
    - Paged key lookup by field value
    """

    def __init__(
        self,
        url: str = "http://localhost:6333",
        api_key: Optional[str] = None,
        timeout: float = 60.0
    ):
        """
        Initialize Qdrant index backend.

        Args:
            url: Qdrant server URL
            api_key: Optional API key for authentication
            timeout: Request timeout in seconds
        """
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

        self._client: Optional[QdrantClient] = None
        self._client_lock = threading.Lock()

        # Performance tracking
        self._total_requests = 0
        self._total_request_time = 0.0
        self._failed_requests = 0

        logger.info(f"Initialized QdrantIndexBackend: {url}")

    @property
    def client(self) -> QdrantClient:
        """Get Qdrant client instance, constructing it on first use"""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = QdrantClient(
                        url=self.url,
                        api_key=self.api_key,
                        timeout=int(self.timeout)
                    )
                    logger.debug(f"Constructed Qdrant client for {self.url}")
        return self._client

    @property
    def is_client_created(self) -> bool:
        return self._client is not None

    async def close(self) -> None:
        """Close the client handle if it was ever constructed"""
        with self._client_lock:
            client, self._client = self._client, None

        if client is None:
            return

        await asyncio.to_thread(client.close)
        logger.info("Closed Qdrant client")

    async def _call(self, method_name: str, *args, **kwargs) -> Any:
        """Run a blocking client method in a worker thread with metrics"""
        method = getattr(self.client, method_name)
        start_time = time.time()
        self._total_requests += 1
        try:
            return await asyncio.to_thread(method, *args, **kwargs)
        except Exception:
            self._failed_requests += 1
            raise
        finally:
            self._total_request_time += time.time() - start_time

    async def index_exists(self, index_name: str) -> bool:
        exists = await self._call("collection_exists", collection_name=index_name)
        logger.debug(f"Collection '{index_name}' exists: {exists}")
        return bool(exists)

    async def create_index(self, schema: IndexSchema) -> None:
        """Create collection and payload indexes; a partial creation is rolled back"""
        start_time = time.time()

        await self._call(
            "create_collection",
            collection_name=schema.name,
            vectors_config={}
        )

        try:
            for field in schema.fields:
                await self._call(
                    "create_payload_index",
                    collection_name=schema.name,
                    field_name=field.name,
                    field_schema=get_payload_index_schema(field),
                    wait=True
                )
                logger.debug(f"Created {field.data_type.value} index on {schema.name}.{field.name}")
        except Exception:
            logger.error(f"Payload index creation failed, removing collection '{schema.name}'")
            try:
                await self._call("delete_collection", collection_name=schema.name)
            except Exception as cleanup_error:
                logger.error(f"Failed to remove partial collection '{schema.name}': {cleanup_error}")
            raise

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            f"Created collection '{schema.name}' with {len(schema.fields)} fields "
            f"in {processing_time:.2f}ms"
        )

    async def delete_index(self, index_name: str) -> None:
        await self._call("delete_collection", collection_name=index_name)
        logger.info(f"Deleted collection '{index_name}'")

    def _build_point(self, schema: IndexSchema, action: IndexAction) -> PointStruct:
        """
        Convert an upload action to a point.

        Raises:
            ValueCoercionError: If a field is unknown or a value doesn't fit
        """
        payload: Dict[str, Any] = {}
        for name, value in action.document.items():
            field = schema.get_field(name)
            if field is None:
                raise ValueCoercionError(f"{name}: field does not exist in index '{schema.name}'")
            payload[name] = coerce_value(field, value)

        payload[schema.key_field_name] = action.key

        return PointStruct(
            id=document_key_to_point_id(action.key),
            vector={},
            payload=payload
        )

    async def index_documents(
        self,
        schema: IndexSchema,
        actions: List[IndexAction]
    ) -> BatchResult:
        """
        Submit uploads and deletes of one bulk request.

        Uploads with invalid values are rejected individually; the rest are
        written in one upsert call and one delete call.
        """
        if not actions:
            return BatchResult()

        start_time = time.time()
        outcomes: Dict[int, ItemResult] = {}
        points: List[Tuple[int, PointStruct]] = []
        deletes: List[Tuple[int, int]] = []

        for position, action in enumerate(actions):
            if action.action == IndexActionType.DELETE:
                deletes.append((position, document_key_to_point_id(action.key)))
                continue
            try:
                points.append((position, self._build_point(schema, action)))
            except ValueCoercionError as e:
                outcomes[position] = ItemResult.failed(action.key, str(e))

        if points:
            await self._call(
                "upsert",
                collection_name=schema.name,
                points=[point for _, point in points],
                wait=True
            )
            for position, _ in points:
                outcomes[position] = ItemResult.ok(actions[position].key)

        if deletes:
            await self._call(
                "delete",
                collection_name=schema.name,
                points_selector=PointIdsList(points=[point_id for _, point_id in deletes]),
                wait=True
            )
            for position, _ in deletes:
                outcomes[position] = ItemResult.ok(actions[position].key)

        result = BatchResult(results=[outcomes[i] for i in range(len(actions))])

        processing_time = (time.time() - start_time) * 1000
        logger.debug(
            f"Indexed batch on {schema.name}: {len(result.succeeded)}/{len(actions)} "
            f"succeeded in {processing_time:.2f}ms"
        )
        return result

    async def find_keys(self, schema: IndexSchema, field_name: str, value: str) -> List[str]:
        """Scroll through every page of documents matching field == value"""
        search_filter = Filter(
            must=[FieldCondition(key=field_name, match=MatchValue(value=value))]
        )

        keys: List[str] = []
        offset = None
        while True:
            points, offset = await self._call(
                "scroll",
                collection_name=schema.name,
                scroll_filter=search_filter,
                limit=_SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=[schema.key_field_name],
                with_vectors=False
            )
            for point in points:
                key = (point.payload or {}).get(schema.key_field_name)
                if key is not None:
                    keys.append(str(key))
            if offset is None:
                break

        logger.debug(f"Found {len(keys)} documents with {field_name}={value} in {schema.name}")
        return keys

    async def count_documents(self, index_name: str) -> int:
        result = await self._call("count", collection_name=index_name, exact=True)
        return result.count if result else 0

    async def get_field_count(self, index_name: str) -> int:
        info = await self._call("get_collection", collection_name=index_name)
        return len(info.payload_schema or {})

    def get_performance_metrics(self) -> Dict[str, Any]:
        """Get backend performance metrics"""
        return {
            "total_requests": self._total_requests,
            "total_request_time_s": self._total_request_time,
            "failed_requests": self._failed_requests,
            "average_request_time_ms": (
                self._total_request_time / max(1, self._total_requests) * 1000
            ),
            "client_created": self.is_client_created,
            "url": self.url
        }
