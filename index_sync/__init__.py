"""
qdrant-index-sync core package

Keeps a schema-constrained Qdrant index in sync with an application's documents.
"""

__version__ = "1.0.0"

from .errors import (
    IndexSyncError, ConfigurationError, UnsupportedTypeError, SchemaCreationError,
    BatchDeleteFailure, BatchInsertPartialFailure
)
from .models import FieldDescriptor, IndexSchema, IndexedItem, SearchServiceConfig
from .storage import QdrantIndexBackend, SchemaManager
from .sync import SyncEngine, ResyncReport, FailureReporter, RetryPolicy
from .factory import create_sync_engine

__all__ = [
    "IndexSyncError",
    "ConfigurationError",
    "UnsupportedTypeError",
    "SchemaCreationError",
    "BatchDeleteFailure",
    "BatchInsertPartialFailure",
    "FieldDescriptor",
    "IndexSchema",
    "IndexedItem",
    "SearchServiceConfig",
    "QdrantIndexBackend",
    "SchemaManager",
    "SyncEngine",
    "ResyncReport",
    "FailureReporter",
    "RetryPolicy",
    "create_sync_engine"
]
