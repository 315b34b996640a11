"""
Base remote index interface for qdrant-index-sync.

Defines the operations the synchronization engine needs from a remote,
schema-constrained search index. QdrantIndexBackend is the production
implementation.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models.documents import BatchResult, IndexAction
from ..models.fields import IndexSchema


class BaseIndexBackend(ABC):
    """Abstract remote search index"""

    @abstractmethod
    async def index_exists(self, index_name: str) -> bool:
        """Query the remote store for the index"""
        ...

    @abstractmethod
    async def create_index(self, schema: IndexSchema) -> None:
        """
        Create the remote index from a schema.

        Raises:
            Exception: Any rejection by the remote store
        """
        ...

    @abstractmethod
    async def delete_index(self, index_name: str) -> None:
        """Delete the remote index and all its documents"""
        ...

    @abstractmethod
    async def index_documents(
        self,
        schema: IndexSchema,
        actions: List[IndexAction]
    ) -> BatchResult:
        """
        Submit one bulk request.

        Returns per-action results in request order. Items rejected by the
        store are reported as failed results; an exception means the whole
        request could not be submitted.
        """
        ...

    @abstractmethod
    async def find_keys(self, schema: IndexSchema, field_name: str, value: str) -> List[str]:
        """Return the keys of all documents whose field equals value"""
        ...

    @abstractmethod
    async def count_documents(self, index_name: str) -> int:
        ...

    @abstractmethod
    async def get_field_count(self, index_name: str) -> int:
        ...

    async def close(self) -> None:
        """Release the remote client handle"""
        pass
