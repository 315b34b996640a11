"""
Document and bulk operation models for qdrant-index-sync.

Handles source documents, bulk index actions, and per-item operation results.
"""

import re
from enum import Enum
from typing import Dict, List, Mapping, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


# Sanitized field name -> string-encoded value
Document = Dict[str, str]

# Decimal integer keys, reported to callbacks as int
_NUMERIC_KEY = re.compile(r"-?[0-9]+")


class IndexState(Enum):
    """Cached existence state of the remote index"""
    UNKNOWN = "unknown"
    ABSENT = "absent"
    PRESENT = "present"


class IndexActionType(Enum):
    """Operation kinds accepted in a bulk request"""
    UPLOAD = "upload"
    DELETE = "delete"


class SourceDocument(BaseModel):
    """Document as yielded by the application's document source"""
    model_config = ConfigDict(frozen=True)

    id: str
    values: Dict[str, str] = Field(default_factory=dict)

    @field_validator('id', mode='before')
    @classmethod
    def validate_id(cls, v) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError('Document id cannot be empty')
        return v

    @field_validator('values', mode='before')
    @classmethod
    def encode_values(cls, v):
        """String-encode values the same way single document upserts do"""
        if isinstance(v, Mapping):
            return {str(k): "" if value is None else str(value) for k, value in v.items()}
        return v


class IndexAction(BaseModel):
    """Single operation of a bulk request"""
    model_config = ConfigDict(frozen=True)

    action: IndexActionType
    key: str
    document: Document = Field(default_factory=dict)

    @classmethod
    def upload(cls, key: str, document: Document) -> 'IndexAction':
        return cls(action=IndexActionType.UPLOAD, key=key, document=document)

    @classmethod
    def delete(cls, key: str) -> 'IndexAction':
        return cls(action=IndexActionType.DELETE, key=key)


class ItemResult(BaseModel):
    """Per-operation outcome of a bulk request"""
    model_config = ConfigDict(frozen=True)

    key: str
    succeeded: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls, key: str) -> 'ItemResult':
        return cls(key=key, succeeded=True)

    @classmethod
    def failed(cls, key: str, error: str) -> 'ItemResult':
        return cls(key=key, succeeded=False, error=error)


class BatchResult(BaseModel):
    """Outcome of one bulk request, in request order"""
    model_config = ConfigDict(frozen=True)

    results: List[ItemResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[ItemResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failed(self) -> List[ItemResult]:
        return [r for r in self.results if not r.succeeded]

    @property
    def is_complete_success(self) -> bool:
        return all(r.succeeded for r in self.results)

    @property
    def is_partial_failure(self) -> bool:
        failed = len(self.failed)
        return 0 < failed < len(self.results)

    def __len__(self) -> int:
        return len(self.results)

    @classmethod
    def all_failed(cls, keys: List[str], error: str) -> 'BatchResult':
        """Mark every key of a request as failed with the same reason"""
        return cls(results=[ItemResult.failed(k, error) for k in keys])


class IndexedItem(BaseModel):
    """Successfully indexed document reported to batch completion callbacks"""
    model_config = ConfigDict(frozen=True)

    node_id: Union[int, str]
    type: str

    @classmethod
    def from_key(cls, key: str, item_type: str) -> 'IndexedItem':
        """Build from a document key, parsing plain decimal keys to int"""
        node_id: Union[int, str] = int(key) if _NUMERIC_KEY.fullmatch(key) else key
        return cls(node_id=node_id, type=item_type)
