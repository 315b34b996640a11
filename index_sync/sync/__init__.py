"""
Index synchronization.

Key Components:
- SyncEngine: single document upsert/remove and per-type resync
- ResyncReport: counts and rejected keys of one resync
- FailureReporter: collects keys rejected by bulk operations
- RetryPolicy: bounded exponential backoff for transient submission errors
"""

from .engine import SyncEngine, ResyncReport
from .failures import FailureReporter, FailureRecord, RetryPolicy

__all__ = [
    "SyncEngine",
    "ResyncReport",
    "FailureReporter",
    "FailureRecord",
    "RetryPolicy",
]
