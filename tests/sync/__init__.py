"""
Test suite for index synchronization.

Covers the synchronization components:
- SyncEngine upsert, remove and per-type resync
- FailureReporter collection and observers
- RetryPolicy backoff for transient submission errors
"""
