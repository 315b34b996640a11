"""
Storage package for qdrant-index-sync.

Provides the Qdrant backend, schema translation, schema lifecycle management
and document batching.
"""

from .base import BaseIndexBackend
from .client import QdrantIndexBackend
from .manager import SchemaManager
from .batching import batch, abatch
from .schemas import (
    translate_field, translate_analyzer, sanitize_field_name, restore_field_name,
    build_index_schema, build_document
)

__all__ = [
    "BaseIndexBackend",
    "QdrantIndexBackend",
    "SchemaManager",
    "batch",
    "abatch",
    "translate_field",
    "translate_analyzer",
    "sanitize_field_name",
    "restore_field_name",
    "build_index_schema",
    "build_document"
]
