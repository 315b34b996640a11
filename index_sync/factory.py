"""
Construction of a ready-to-use sync engine from configuration.

The backend (and its lazily built client handle) is created once here and
shared by the schema manager and the engine.
"""

import logging
from typing import Iterable, Mapping, Optional

from .models.config import SearchServiceConfig
from .models.fields import FieldDescriptor
from .storage.base import BaseIndexBackend
from .storage.client import QdrantIndexBackend
from .storage.manager import SchemaManager
from .sync.engine import SyncEngine
from .sync.failures import FailureReporter, RetryPolicy

logger = logging.getLogger(__name__)


def create_sync_engine(
    config: SearchServiceConfig,
    field_groups: Mapping[str, Iterable[FieldDescriptor]],
    backend: Optional[BaseIndexBackend] = None,
    failure_reporter: Optional[FailureReporter] = None
) -> SyncEngine:
    """
    Build backend, schema manager and engine for one index.

    Args:
        config: Search service configuration
        field_groups: Declared fields keyed by logical type
        backend: Backend to use instead of a QdrantIndexBackend from config
        failure_reporter: Shared failure reporter (a new one if None)

    Returns:
        Sync engine owning the backend
    """
    if backend is None:
        backend = QdrantIndexBackend(
            url=config.url,
            api_key=config.api_key,
            timeout=config.timeout
        )

    schema_manager = SchemaManager(
        backend=backend,
        index_name=config.index_name,
        field_groups=field_groups,
        default_analyzer=config.default_analyzer
    )

    logger.debug(f"Creating sync engine for index '{config.index_name}' at {config.url}")

    return SyncEngine(
        backend=backend,
        schema_manager=schema_manager,
        failure_reporter=failure_reporter,
        retry_policy=RetryPolicy.from_config(config.retry),
        batch_size=config.batch_size
    )
