"""
Storage utilities for consistent operations across the codebase.

Provides the canonical conversion from document keys to Qdrant point IDs.
"""

import hashlib


def document_key_to_point_id(key: str) -> int:
    """
    Convert a document key to a Qdrant point ID using consistent SHA256 hashing.

    Qdrant only accepts unsigned integers or UUIDs as point IDs, so the key
    itself is kept in the payload and the point ID is derived from it. All
    callers should use this function rather than implementing their own.

    Args:
        key: Document key (e.g., "1054")

    Returns:
        Integer point ID for Qdrant storage
    """
    # First 8 bytes of the digest as unsigned integer
    hash_digest = hashlib.sha256(key.encode('utf-8')).digest()
    return int.from_bytes(hash_digest[:8], byteorder='big', signed=False)
