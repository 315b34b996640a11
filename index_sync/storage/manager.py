"""
Remote schema lifecycle management for qdrant-index-sync.

Owns the cached existence state of one remote index and creates or recreates
it from the declared fields.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from .base import BaseIndexBackend
from .schemas import build_index_schema
from ..errors import SchemaCreationError
from ..models.documents import IndexState
from ..models.fields import AnalyzerName, FieldDescriptor, IndexSchema

logger = logging.getLogger(__name__)


class SchemaManager:
    """
    Manager for one remote index's existence and schema.

    The existence check runs at most once; its result is cached until an
    explicit forced recreation. The cache, the existence query and the
    delete+create sequence all share one lock, so concurrent callers never
    observe or cause interleaved recreation.
    """

    def __init__(
        self,
        backend: BaseIndexBackend,
        index_name: str,
        field_groups: Mapping[str, Iterable[FieldDescriptor]],
        default_analyzer: str = AnalyzerName.STANDARD.value
    ):
        """
        Initialize schema manager.

        Args:
            backend: Remote index backend
            index_name: Remote index identifier
            field_groups: Declared fields keyed by logical type
            default_analyzer: Analyzer for string fields without a hint
        """
        self.backend = backend
        self.index_name = index_name
        self.default_analyzer = default_analyzer
        self._field_groups = {k: list(v) for k, v in field_groups.items()}
        self._schema: Optional[IndexSchema] = None
        self._state = IndexState.UNKNOWN
        self._lock = asyncio.Lock()

        logger.info(f"Initialized schema manager for index: {index_name}")

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def schema(self) -> IndexSchema:
        """
        Index schema translated from the declared fields.

        Raises:
            UnsupportedTypeError: If a declared field type has no remote equivalent
        """
        if self._schema is None:
            self._schema = build_index_schema(
                self.index_name, self._field_groups, self.default_analyzer
            )
        return self._schema

    async def _exists_locked(self) -> bool:
        if self._state == IndexState.UNKNOWN:
            found = await self.backend.index_exists(self.index_name)
            self._state = IndexState.PRESENT if found else IndexState.ABSENT
            logger.debug(f"Index '{self.index_name}' state: {self._state.value}")
        return self._state == IndexState.PRESENT

    async def exists(self) -> bool:
        """Check whether the remote index exists, querying the store at most once"""
        if self._state != IndexState.UNKNOWN:
            return self._state == IndexState.PRESENT

        async with self._lock:
            return await self._exists_locked()

    async def ensure(self, force_recreate: bool = False) -> None:
        """
        Ensure the remote index exists, creating it if necessary.

        Args:
            force_recreate: Delete and recreate the index even if it exists

        Raises:
            UnsupportedTypeError: If a declared field cannot be translated
            SchemaCreationError: If the remote store rejects the schema
        """
        if not force_recreate and self._state == IndexState.PRESENT:
            return

        # Translate before touching the remote index
        schema = self.schema

        async with self._lock:
            exists = await self._exists_locked()
            if exists and not force_recreate:
                return

            if exists:
                logger.info(f"Deleting index '{self.index_name}' for recreation")
                await self.backend.delete_index(self.index_name)
                self._state = IndexState.ABSENT

            try:
                await self.backend.create_index(schema)
            except Exception as e:
                logger.error(f"Failed to create index '{self.index_name}': {e}")
                raise SchemaCreationError(self.index_name, str(e)) from e

            self._state = IndexState.PRESENT
            logger.info(f"Created index '{self.index_name}' with {len(schema.fields)} fields")

    async def get_document_count(self) -> int:
        return await self.backend.count_documents(self.index_name)

    async def get_field_count(self) -> int:
        return await self.backend.get_field_count(self.index_name)

    def get_status(self) -> Dict[str, Any]:
        """
        Get schema manager status.

        Returns:
            Dictionary with index name, cached state and declared groups
        """
        return {
            "index_name": self.index_name,
            "state": self._state.value,
            "field_groups": sorted(self._field_groups),
            "default_analyzer": self.default_analyzer
        }
