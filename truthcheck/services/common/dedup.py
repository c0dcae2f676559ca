"""
Similarity-based deduplication for claim lists.
"""

from typing import Callable, List, Sequence, Set, TypeVar

from truthcheck.constants.config import CLAIM_DEDUP_THRESHOLD
from truthcheck.services.common.text_cleaner import set_jaccard, token_set

T = TypeVar("T")


def dedup_by_similarity(
    items: Sequence[T],
    text_of: Callable[[T], str],
    similarity_threshold: float = CLAIM_DEDUP_THRESHOLD,
) -> List[T]:
    """
    Deduplicate items whose texts are near-duplicates by token-set Jaccard similarity.

    Args:
        items: Items in priority order
        text_of: Returns the text to compare for an item
        similarity_threshold: Items at or above this similarity to a kept item are dropped

    Returns:
        Deduplicated list keeping the first occurrence
    """
    kept: List[T] = []
    kept_tokens: List[Set[str]] = []

    for item in items:
        tokens = token_set(text_of(item))
        if any(set_jaccard(tokens, seen) >= similarity_threshold for seen in kept_tokens):
            continue
        kept.append(item)
        kept_tokens.append(tokens)

    return kept
