"""Batch planning utilities."""
from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")


def _default_size(item) -> int:
    file = getattr(item, "file", None)
    if file is not None:
        return file.size
    return item.size


def plan_batches(
    items: Sequence[T],
    max_bytes: int,
    max_count: int,
    size_of: Callable[[T], int] = _default_size,
) -> List[List[T]]:
    """
    Split items into ordered batches, greedily, left to right.

    An item joins the current batch while the batch stays within both
    ``max_count`` items and ``max_bytes`` bytes; otherwise the batch is closed
    and a new one starts with that item. An item larger than ``max_bytes``
    still gets a batch of its own. Concatenating the result gives back the
    input exactly.

    Args:
        items: Items in upload order
        max_bytes: Byte ceiling per batch
        max_count: Item ceiling per batch (>= 1)
        size_of: Byte size of one item

    Returns:
        List of batches (empty for empty input)
    """
    if max_count < 1:
        raise ValueError(f"max_count must be >= 1, got {max_count}")
    if max_bytes < 0:
        raise ValueError(f"max_bytes must be >= 0, got {max_bytes}")

    batches: List[List[T]] = []
    current: List[T] = []
    current_size = 0

    for item in items:
        size = size_of(item)
        fits_by_count = len(current) < max_count
        fits_by_size = current_size + size <= max_bytes
        if fits_by_count and fits_by_size:
            current.append(item)
            current_size += size
        else:
            if current:
                batches.append(current)
            current = [item]
            current_size = size

    if current:
        batches.append(current)
    return batches
