"""
Core data models for qdrant-index-sync

Pydantic models for fields, schemas, documents, bulk results and configuration.
"""

from .fields import (
    FieldDescriptor, SemanticType, RemoteDataType, RemoteField, IndexSchema,
    AnalyzerName, KEY_FIELD_NAME, TYPE_FIELD_NAME, SPECIAL_FIELD_PREFIX
)
from .documents import (
    Document, SourceDocument, IndexAction, IndexActionType, ItemResult,
    BatchResult, IndexedItem, IndexState
)
from .config import SearchServiceConfig, RetryConfig, IndexSyncSettings, MAX_BATCH_SIZE

__all__ = [
    # Fields
    "FieldDescriptor",
    "SemanticType",
    "RemoteDataType",
    "RemoteField",
    "IndexSchema",
    "AnalyzerName",
    "KEY_FIELD_NAME",
    "TYPE_FIELD_NAME",
    "SPECIAL_FIELD_PREFIX",

    # Documents
    "Document",
    "SourceDocument",
    "IndexAction",
    "IndexActionType",
    "ItemResult",
    "BatchResult",
    "IndexedItem",
    "IndexState",

    # Configuration
    "SearchServiceConfig",
    "RetryConfig",
    "IndexSyncSettings",
    "MAX_BATCH_SIZE"
]
