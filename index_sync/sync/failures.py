"""
Failure reporting and retry policy for bulk operations.

FailureReporter collects rejected keys from partial batch failures and hands
them to observers. RetryPolicy is the bounded backoff applied to transient
whole-request failures; per-item rejections are never retried.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from ..models.config import RetryConfig
from ..models.documents import BatchResult

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class FailureRecord:
    """A document key rejected by a bulk operation"""
    key: str
    reason: str
    operation: str = "index"
    item_type: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


class FailureReporter:
    """
    Collects partial-failure information from bulk operations.

    Records are kept in arrival order and pushed to every registered
    observer (logging/metrics collaborators). No retries happen here.
    """

    def __init__(self):
        self._failures: List[FailureRecord] = []
        self._observers: List[Callable[[FailureRecord], None]] = []

    def add_observer(self, observer: Callable[[FailureRecord], None]) -> None:
        """Add failure observer function"""
        self._observers.append(observer)

    def remove_observer(self, observer: Callable[[FailureRecord], None]) -> None:
        """Remove failure observer function"""
        if observer in self._observers:
            self._observers.remove(observer)

    def report(
        self,
        key: str,
        reason: str,
        operation: str = "index",
        item_type: Optional[str] = None
    ) -> FailureRecord:
        record = FailureRecord(key=key, reason=reason, operation=operation, item_type=item_type)
        self._failures.append(record)

        for observer in self._observers:
            try:
                observer(record)
            except Exception as e:
                logger.warning(f"Failure observer failed: {e}")

        return record

    def report_batch(
        self,
        result: BatchResult,
        operation: str = "index",
        item_type: Optional[str] = None
    ) -> List[FailureRecord]:
        """Record every failed item of a bulk result"""
        records = [
            self.report(r.key, r.error or "rejected", operation, item_type)
            for r in result.failed
        ]
        if records:
            logger.warning(
                f"Failed to {operation} some of the documents: "
                f"{', '.join(r.key for r in records)}"
            )
        return records

    @property
    def failures(self) -> List[FailureRecord]:
        return list(self._failures)

    def clear(self) -> None:
        self._failures.clear()

    def get_summary(self) -> Dict[str, Any]:
        by_operation: Dict[str, int] = {}
        for record in self._failures:
            by_operation[record.operation] = by_operation.get(record.operation, 0) + 1
        return {
            "total_failures": len(self._failures),
            "by_operation": by_operation,
            "last_failure": self._failures[-1].timestamp.isoformat() if self._failures else None
        }


class RetryPolicy:
    """Bounded exponential backoff for transient submission failures"""

    def __init__(
        self,
        max_retries: int = 2,
        initial_delay: float = 0.5,
        backoff_factor: float = 2.0,
        max_delay: float = 10.0
    ):
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay

    @classmethod
    def from_config(cls, config: RetryConfig) -> 'RetryPolicy':
        return cls(
            max_retries=config.max_retries,
            initial_delay=config.initial_delay,
            backoff_factor=config.backoff_factor,
            max_delay=config.max_delay
        )

    @classmethod
    def disabled(cls) -> 'RetryPolicy':
        return cls(max_retries=0)

    def get_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (starting at 1)"""
        delay = self.initial_delay * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_delay)

    async def run(self, operation: Callable[[], Awaitable[T]], description: str = "operation") -> T:
        """
        Await ``operation`` until it succeeds or retries are exhausted.

        Raises:
            Exception: The last error once all attempts failed
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if attempt >= self.max_retries:
                    if self.max_retries:
                        logger.error(f"{description} failed after {attempt + 1} attempts: {e}")
                    raise
                attempt += 1
                delay = self.get_delay(attempt)
                logger.warning(
                    f"{description} attempt {attempt} failed: {e}. Retrying in {delay:.2f}s..."
                )
                await asyncio.sleep(delay)
