"""
Index synchronization engine.

Keeps one remote index in line with the application's documents: single
document upsert/remove, and full per-type resync (delete every remote
document of a type, then repopulate it from the source in bounded batches).
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import (
    Any, AsyncIterable, AsyncIterator, Callable, Dict, Iterable, List, Mapping,
    Optional, Tuple, Union
)

from tqdm.asyncio import tqdm

from .failures import FailureRecord, FailureReporter, RetryPolicy
from ..errors import BatchDeleteFailure, BatchInsertPartialFailure
from ..models.config import MAX_BATCH_SIZE
from ..models.documents import BatchResult, IndexAction, IndexedItem, ItemResult, SourceDocument
from ..models.fields import IndexSchema
from ..storage.base import BaseIndexBackend
from ..storage.batching import abatch, batch
from ..storage.manager import SchemaManager
from ..storage.schemas import build_document

logger = logging.getLogger(__name__)


SourceItem = Union[SourceDocument, Tuple[Any, Mapping[str, Any]]]
DocumentStream = Union[Iterable[SourceItem], AsyncIterable[SourceItem]]
BatchCompleteCallback = Callable[[List[IndexedItem]], Any]
ItemCompleteCallback = Callable[[str], Any]


@dataclass
class ResyncReport:
    """Result of a full resync of one logical type"""
    item_type: str
    deleted_documents: int = 0
    insert_batches: int = 0
    indexed_documents: int = 0
    failed_documents: int = 0
    failures: List[FailureRecord] = field(default_factory=list)
    total_time: float = 0.0

    @property
    def total_documents(self) -> int:
        return self.indexed_documents + self.failed_documents

    @property
    def success_rate(self) -> float:
        """Calculate success rate"""
        if self.total_documents == 0:
            return 100.0
        return (self.indexed_documents / self.total_documents) * 100

    def raise_for_failures(self) -> None:
        """
        Raise if any document was rejected during repopulation.

        Raises:
            BatchInsertPartialFailure: Carrying the rejected keys
        """
        if self.failures:
            raise BatchInsertPartialFailure(self.item_type, self.failures)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "item_type": self.item_type,
            "deleted_documents": self.deleted_documents,
            "insert_batches": self.insert_batches,
            "indexed_documents": self.indexed_documents,
            "failed_documents": self.failed_documents,
            "success_rate": self.success_rate,
            "total_time_s": self.total_time,
            "failed_keys": [f.key for f in self.failures]
        }


def _to_source_document(item: SourceItem) -> SourceDocument:
    if isinstance(item, SourceDocument):
        return item
    item_id, values = item
    return SourceDocument(id=item_id, values=values)


def _source_key(item: Any) -> str:
    """Best-effort key of a source item that could not be built"""
    try:
        return str(item[0])
    except (TypeError, IndexError, KeyError):
        return repr(item)


async def _notify(callback: Optional[Callable[..., Any]], payload: Any) -> None:
    if callback is None:
        return
    result = callback(payload)
    if inspect.isawaitable(result):
        await result


class SyncEngine:
    """
    Synchronizes application documents into one remote index.

    Features:
    - Single document upsert/remove with completion callbacks
    - Per-type resync: fatal stale-document cleanup, loss-tolerant repopulation
    - Bounded batches no larger than the remote bulk limit
    - Bounded retry with exponential backoff on transient submission errors
    - Resyncs of the same type on one engine are serialized

    Resyncs of the same type from separate engines or processes are not
    coordinated; one call's cleanup can remove documents the other just wrote.
    """

    def __init__(
        self,
        backend: BaseIndexBackend,
        schema_manager: SchemaManager,
        failure_reporter: Optional[FailureReporter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        batch_size: int = MAX_BATCH_SIZE
    ):
        """
        Initialize sync engine.

        Args:
            backend: Remote index backend
            schema_manager: Schema manager for the same index
            failure_reporter: Collector for rejected keys (a new one if None)
            retry_policy: Retry policy for transient submission errors
            batch_size: Documents per bulk request (capped at the remote limit)
        """
        self.backend = backend
        self.schema_manager = schema_manager
        self.failure_reporter = failure_reporter or FailureReporter()
        self.retry_policy = retry_policy or RetryPolicy()
        self.batch_size = min(batch_size, MAX_BATCH_SIZE)

        self._type_locks: Dict[str, asyncio.Lock] = {}
        self._closed = False

        logger.info(
            f"Initialized SyncEngine for index '{schema_manager.index_name}' "
            f"with batch_size={self.batch_size}"
        )

    async def __aenter__(self) -> 'SyncEngine':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the backend client handle"""
        if self._closed:
            return
        self._closed = True
        await self.backend.close()

    async def ensure_index(self, force_recreate: bool = False) -> None:
        await self.schema_manager.ensure(force_recreate)

    async def _submit(
        self,
        schema: IndexSchema,
        actions: List[IndexAction],
        description: str
    ) -> BatchResult:
        """Submit one bulk request; exhausted retries mark every item failed"""
        try:
            return await self.retry_policy.run(
                lambda: self.backend.index_documents(schema, actions),
                description
            )
        except Exception as e:
            logger.error(f"{description} failed: {e}")
            return BatchResult.all_failed([a.key for a in actions], str(e))

    async def upsert(
        self,
        item_id: str,
        fields: Mapping[str, Any],
        item_type: Optional[str] = None,
        on_complete: Optional[ItemCompleteCallback] = None
    ) -> bool:
        """
        Index or replace a single document.

        The completion callback fires with the id once the document was
        accepted. Failures are recorded by the failure reporter and are not
        raised; the callback then does not fire.

        Returns:
            True if the document was accepted
        """
        item_id = str(item_id)
        schema = self.schema_manager.schema
        document = build_document(item_id, fields, item_type)

        result = await self._submit(
            schema, [IndexAction.upload(item_id, document)], f"Upsert of {item_id}"
        )
        if not result.is_complete_success:
            self.failure_reporter.report_batch(result, "index", item_type)
            return False

        await _notify(on_complete, item_id)
        return True

    async def remove(
        self,
        item_id: str,
        on_complete: Optional[ItemCompleteCallback] = None
    ) -> None:
        """
        Delete a single document by key.

        Idempotent: the callback fires whether or not the key existed.
        Errors that survive the retry policy propagate.
        """
        item_id = str(item_id)
        schema = self.schema_manager.schema

        await self.retry_policy.run(
            lambda: self.backend.index_documents(schema, [IndexAction.delete(item_id)]),
            f"Delete of {item_id}"
        )
        await _notify(on_complete, item_id)

    def _get_type_lock(self, item_type: str) -> asyncio.Lock:
        lock = self._type_locks.get(item_type)
        if lock is None:
            lock = self._type_locks[item_type] = asyncio.Lock()
        return lock

    async def _iter_batches(self, documents: DocumentStream) -> AsyncIterator[List[SourceItem]]:
        if hasattr(documents, "__aiter__"):
            async for group in abatch(documents, self.batch_size):
                yield group
        else:
            for group in batch(documents, self.batch_size):
                yield group

    async def _delete_all_of_type(self, schema: IndexSchema, item_type: str) -> int:
        """
        Remove every remote document of a type.

        Raises:
            BatchDeleteFailure: If any key could not be deleted
        """
        keys = await self.backend.find_keys(schema, schema.type_field_name, item_type)
        if not keys:
            logger.debug(f"No existing documents of type '{item_type}'")
            return 0

        for batch_idx, group in enumerate(batch(keys, self.batch_size)):
            result = await self._submit(
                schema,
                [IndexAction.delete(key) for key in group],
                f"Delete batch {batch_idx} of type '{item_type}'"
            )
            if result.failed:
                records = self.failure_reporter.report_batch(result, "delete", item_type)
                logger.error(
                    f"Aborting resync of '{item_type}': {len(records)} stale documents "
                    f"could not be deleted"
                )
                raise BatchDeleteFailure(item_type, records)

        logger.info(f"Deleted {len(keys)} existing documents of type '{item_type}'")
        return len(keys)

    async def resync_type(
        self,
        item_type: str,
        documents: DocumentStream,
        batch_complete: Optional[BatchCompleteCallback] = None,
        show_progress: bool = False
    ) -> ResyncReport:
        """
        Replace every remote document of a type with the given documents.

        Args:
            item_type: Logical type being resynced
            documents: Single-pass stream of (id, values) pairs or SourceDocuments
            batch_complete: Called per batch with the successfully indexed items
            show_progress: Whether to show progress bar

        Returns:
            Resync report with counts and rejected keys

        Raises:
            UnsupportedTypeError: If the declared fields cannot be translated
            SchemaCreationError: If the remote store rejects the schema
            BatchDeleteFailure: If stale-document cleanup failed; nothing was inserted
        """
        async with self._get_type_lock(item_type):
            start_time = time.time()

            await self.schema_manager.ensure(False)
            schema = self.schema_manager.schema

            report = ResyncReport(item_type=item_type)
            report.deleted_documents = await self._delete_all_of_type(schema, item_type)

            pbar = None
            if show_progress:
                pbar = tqdm(
                    desc=f"Indexing {item_type}",
                    unit="documents",
                    unit_scale=True
                )

            try:
                async for group in self._iter_batches(documents):
                    actions = []
                    invalid = []
                    for item in group:
                        try:
                            source = _to_source_document(item)
                        except (TypeError, ValueError) as e:
                            invalid.append(ItemResult.failed(
                                _source_key(item), f"Invalid source document: {e}"
                            ))
                            continue
                        actions.append(IndexAction.upload(
                            source.id, build_document(source.id, source.values, item_type)
                        ))

                    result = BatchResult()
                    if actions:
                        result = await self._submit(
                            schema, actions, f"Insert batch {report.insert_batches} of type '{item_type}'"
                        )
                    if invalid:
                        result = BatchResult(results=invalid + result.results)
                    report.insert_batches += 1

                    if result.failed:
                        report.failures.extend(
                            self.failure_reporter.report_batch(result, "index", item_type)
                        )
                        report.failed_documents += len(result.failed)

                    indexed = [IndexedItem.from_key(r.key, item_type) for r in result.succeeded]
                    report.indexed_documents += len(indexed)
                    if indexed:
                        await _notify(batch_complete, indexed)

                    if pbar is not None:
                        pbar.update(len(group))
                        pbar.set_postfix({'success_rate': f"{report.success_rate:.1f}%"})
            finally:
                if pbar is not None:
                    pbar.close()

            report.total_time = time.time() - start_time
            logger.info(
                f"Resync of '{item_type}' completed: {report.indexed_documents}/"
                f"{report.total_documents} documents in {report.insert_batches} batches "
                f"({report.deleted_documents} deleted) in {report.total_time:.2f}s"
            )
            return report

    def get_status(self) -> Dict[str, Any]:
        return {
            "index": self.schema_manager.get_status(),
            "batch_size": self.batch_size,
            "max_retries": self.retry_policy.max_retries,
            "failures": self.failure_reporter.get_summary()
        }
