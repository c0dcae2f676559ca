"""
List operations for batching and order-preserving deduplication.
"""

from typing import Any, List, Set


def dedupe_list(items: List[Any]) -> List[Any]:
    """
    Deduplicate a list while preserving order.

    Args:
        items: List of hashable items that may contain duplicates

    Returns:
        List with duplicates removed, order preserved
    """
    seen: Set[Any] = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def chunk_list(items: List[Any], chunk_size: int) -> List[List[Any]]:
    """
    Split list into chunks of specified size.

    Args:
        items: List to chunk
        chunk_size: Size of each chunk

    Returns:
        List of chunks
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")
    return [items[i : i + chunk_size] for i in range(0, len(items), chunk_size)]
