"""
Exception taxonomy for qdrant-index-sync.

Fatal errors (unsupported field types, schema rejection, failed stale-document
cleanup) are raised; partial insert failures are carried as values and only
raised on request.
"""

from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from .sync.failures import FailureRecord


class IndexSyncError(Exception):
    """Base exception for index synchronization errors"""
    pass


class ConfigurationError(IndexSyncError):
    """Configuration could not be loaded or validated"""
    pass


class UnsupportedTypeError(IndexSyncError):
    """Semantic field type has no equivalent in the remote index"""

    def __init__(self, field_type: str, field_name: str = ""):
        self.field_type = field_type
        self.field_name = field_name
        target = f" (field '{field_name}')" if field_name else ""
        super().__init__(
            f"Search index doesn't support the data type '{field_type}'{target}, "
            f"use datetime instead"
        )


class SchemaCreationError(IndexSyncError):
    """Remote store rejected the index schema"""

    def __init__(self, index_name: str, reason: str):
        self.index_name = index_name
        self.reason = reason
        super().__init__(f"Failed to create index '{index_name}': {reason}")


class BatchFailure(IndexSyncError):
    """Base for batch operations with rejected items"""

    operation = "batch"

    def __init__(self, item_type: str, failures: List["FailureRecord"]):
        self.item_type = item_type
        self.failures = list(failures)
        keys = ", ".join(f.key for f in self.failures)
        super().__init__(
            f"Failed to {self.operation} {len(self.failures)} documents "
            f"of type '{item_type}': {keys}"
        )

    @property
    def failed_keys(self) -> List[str]:
        return [f.key for f in self.failures]


class BatchDeleteFailure(BatchFailure):
    """Stale-document cleanup failed during a resync; the resync is aborted"""

    operation = "delete"


class BatchInsertPartialFailure(BatchFailure):
    """Some documents of a resync were rejected by the remote store"""

    operation = "index"
