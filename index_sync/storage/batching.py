"""
Document batching for bulk operations.

Splits an unbounded, single-pass document stream into groups no larger than
the remote store accepts per bulk call.
"""

from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, List, TypeVar

from ..models.config import MAX_BATCH_SIZE

T = TypeVar('T')


def _validate_size(max_size: int) -> None:
    if not 1 <= max_size <= MAX_BATCH_SIZE:
        raise ValueError(f"Batch size must be between 1 and {MAX_BATCH_SIZE}, got {max_size}")


def batch(stream: Iterable[T], max_size: int = MAX_BATCH_SIZE) -> Iterator[List[T]]:
    """
    Lazily group a stream into lists of at most ``max_size`` items.

    Input order is preserved and only the group being filled is buffered.
    The final group may be smaller. The result is single-pass.

    Example:
        >>> [len(g) for g in batch(range(2500))]
        [1000, 1000, 500]
    """
    _validate_size(max_size)

    group: List[T] = []
    for item in stream:
        group.append(item)
        if len(group) == max_size:
            yield group
            group = []

    if group:
        yield group


async def abatch(stream: AsyncIterable[T], max_size: int = MAX_BATCH_SIZE) -> AsyncIterator[List[T]]:
    """Async counterpart of batch() for async document sources"""
    _validate_size(max_size)

    group: List[T] = []
    async for item in stream:
        group.append(item)
        if len(group) == max_size:
            yield group
            group = []

    if group:
        yield group
