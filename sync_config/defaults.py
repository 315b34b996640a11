"""
Default configuration values for qdrant-index-sync.

Centralized defaults that can be overridden by environment variables or config files.
"""

from typing import Any, Dict

# Global default settings
DEFAULT_SETTINGS: Dict[str, Any] = {
    # Search service connection
    "url": "http://localhost:6333",
    "api_key": None,
    "timeout": 60.0,

    # Indexing
    "default_analyzer": "standard",
    "batch_size": 1000,

    # Transient failure retries
    "retry": {
        "max_retries": 2,
        "initial_delay": 0.5,
        "backoff_factor": 2.0,
        "max_delay": 10.0
    }
}

# Environment variable mappings
ENV_VAR_MAPPING = {
    'INDEX_SYNC_URL': 'url',
    'INDEX_SYNC_API_KEY': 'api_key',
    'INDEX_SYNC_TIMEOUT': 'timeout',
    'INDEX_SYNC_INDEX_NAME': 'index_name',
    'INDEX_SYNC_DEFAULT_ANALYZER': 'default_analyzer',
    'INDEX_SYNC_BATCH_SIZE': 'batch_size',
    'INDEX_SYNC_MAX_RETRIES': 'retry.max_retries',
    'INDEX_SYNC_RETRY_DELAY': 'retry.initial_delay'
}

# Values that must stay strings even when they look numeric or boolean
STRING_SETTINGS = {'api_key', 'index_name', 'default_analyzer', 'url'}

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
