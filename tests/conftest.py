"""
Shared fixtures for qdrant-index-sync tests.

Provides an in-memory index backend that records every request and can be
told to reject specific keys or fail whole requests.
"""

import asyncio
from typing import Dict, List, Set

import pytest

from index_sync.models.documents import (
    BatchResult, Document, IndexAction, IndexActionType, ItemResult
)
from index_sync.models.fields import FieldDescriptor, IndexSchema
from index_sync.storage.base import BaseIndexBackend
from index_sync.storage.manager import SchemaManager
from index_sync.sync.engine import SyncEngine
from index_sync.sync.failures import FailureReporter, RetryPolicy


class InMemoryIndexBackend(BaseIndexBackend):
    """Index backend keeping documents in dictionaries"""

    def __init__(self, query_delay: float = 0.0):
        self.query_delay = query_delay
        self.indexes: Dict[str, IndexSchema] = {}
        self.documents: Dict[str, Dict[str, Document]] = {}

        # Failure injection
        self.reject_keys: Set[str] = set()
        self.failing_requests = 0
        self.create_error: Exception = None

        # Call recording
        self.exists_calls = 0
        self.created: List[IndexSchema] = []
        self.deleted_indexes: List[str] = []
        self.requests: List[List[IndexAction]] = []
        self.close_calls = 0

    def seed(self, index_name: str, documents: Dict[str, Document]) -> None:
        self.documents.setdefault(index_name, {}).update(documents)

    @property
    def upload_requests(self) -> List[List[IndexAction]]:
        return [r for r in self.requests if r[0].action == IndexActionType.UPLOAD]

    @property
    def delete_requests(self) -> List[List[IndexAction]]:
        return [r for r in self.requests if r[0].action == IndexActionType.DELETE]

    async def index_exists(self, index_name: str) -> bool:
        self.exists_calls += 1
        await asyncio.sleep(self.query_delay)
        return index_name in self.indexes

    async def create_index(self, schema: IndexSchema) -> None:
        if self.create_error is not None:
            raise self.create_error
        self.created.append(schema)
        self.indexes[schema.name] = schema
        self.documents.setdefault(schema.name, {})

    async def delete_index(self, index_name: str) -> None:
        self.deleted_indexes.append(index_name)
        self.indexes.pop(index_name, None)
        self.documents.pop(index_name, None)

    async def index_documents(self, schema: IndexSchema, actions: List[IndexAction]) -> BatchResult:
        self.requests.append(list(actions))
        if self.failing_requests > 0:
            self.failing_requests -= 1
            raise ConnectionError("search service unavailable")

        store = self.documents.setdefault(schema.name, {})
        results = []
        for action in actions:
            if action.key in self.reject_keys:
                results.append(ItemResult.failed(action.key, "rejected by test"))
            elif action.action == IndexActionType.UPLOAD:
                store[action.key] = dict(action.document)
                results.append(ItemResult.ok(action.key))
            else:
                store.pop(action.key, None)
                results.append(ItemResult.ok(action.key))
        return BatchResult(results=results)

    async def find_keys(self, schema: IndexSchema, field_name: str, value: str) -> List[str]:
        store = self.documents.get(schema.name, {})
        return [key for key, doc in store.items() if doc.get(field_name) == value]

    async def count_documents(self, index_name: str) -> int:
        return len(self.documents.get(index_name, {}))

    async def get_field_count(self, index_name: str) -> int:
        return len(self.indexes[index_name].fields)

    async def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def field_groups():
    """Declared fields for two logical types"""
    return {
        "content": [
            FieldDescriptor(name="title"),
            FieldDescriptor(name="bodyText", analyzer="Lucene.Net.Analysis.Standard.StandardAnalyzer, Lucene.Net"),
            FieldDescriptor(name="updateDate", type="datetime", enable_sorting=True),
            FieldDescriptor(name="__Path"),
        ],
        "media": [
            FieldDescriptor(name="title"),
            FieldDescriptor(name="umbracoBytes", type="long"),
            FieldDescriptor(name="sortOrder", type="int", enable_sorting=True),
        ],
    }


@pytest.fixture
def memory_backend():
    """Create empty in-memory backend"""
    return InMemoryIndexBackend()


@pytest.fixture
def schema_manager(memory_backend, field_groups):
    """Create schema manager on the in-memory backend"""
    return SchemaManager(memory_backend, "test-index", field_groups)


@pytest.fixture
def failure_reporter():
    return FailureReporter()


@pytest.fixture
def sync_engine(memory_backend, schema_manager, failure_reporter):
    """Create sync engine with immediate retries"""
    return SyncEngine(
        backend=memory_backend,
        schema_manager=schema_manager,
        failure_reporter=failure_reporter,
        retry_policy=RetryPolicy(max_retries=2, initial_delay=0.0)
    )
