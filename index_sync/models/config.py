"""
Configuration models for qdrant-index-sync.

Handles search service connection settings, retry policy, and global settings.
"""

import re
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Maximum number of documents the remote store accepts per bulk call
MAX_BATCH_SIZE = 1000


def clean_index_name(name: str) -> str:
    """
    Normalize an index identifier to a legal remote index name.

    Lowercases, replaces runs of illegal characters with a dash and trims
    leading/trailing dashes.
    """
    cleaned = re.sub(r'[^a-z0-9_-]+', '-', name.strip().lower()).strip('-')
    if not cleaned:
        raise ValueError(f'Index name is empty after cleaning: {name!r}')
    return cleaned


class RetryConfig(BaseModel):
    """Bounded exponential backoff for transient submission failures"""
    model_config = ConfigDict(validate_assignment=True)

    max_retries: int = Field(default=2, ge=0, le=10)
    initial_delay: float = Field(default=0.5, ge=0.0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    max_delay: float = Field(default=10.0, ge=0.0)


class SearchServiceConfig(BaseModel):
    """Remote search index connection and indexing configuration"""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True
    )

    # Service identity and credential
    url: str = "http://localhost:6333"
    api_key: Optional[str] = None
    timeout: float = Field(default=60.0, gt=0.0)

    # Index identity
    index_name: str

    # Analyzer applied to searchable string fields without a hint
    default_analyzer: str = "standard"

    # Bulk settings
    batch_size: int = Field(default=MAX_BATCH_SIZE, ge=1, le=MAX_BATCH_SIZE)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate search service URL format"""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('Search service URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('index_name')
    @classmethod
    def validate_index_name(cls, v: str) -> str:
        return clean_index_name(v)


class IndexSyncSettings(BaseSettings):
    """Global settings with environment variable support"""
    model_config = SettingsConfigDict(
        env_prefix="INDEX_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    config_file: Optional[str] = None
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
