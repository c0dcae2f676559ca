"""
Text cleaning and similarity utilities shared by extraction, normalization and scoring.
"""

import re
from typing import List, Set

_WORD = re.compile(r"[a-z0-9]+(?:['.-][a-z0-9]+)*")


def normalize_text(text: str) -> str:
    """
    Normalize text by collapsing whitespace.

    Args:
        text: Raw text to normalize

    Returns:
        Stripped text with single spaces
    """
    if not isinstance(text, str):
        return ""
    return " ".join(text.split()).strip()


def word_tokens(text: str) -> List[str]:
    """Lowercased word tokens, keeping decimals and hyphenated words intact."""
    if not text:
        return []
    return _WORD.findall(text.lower())


def token_set(text: str) -> Set[str]:
    return set(word_tokens(text))


def set_jaccard(a: Set[str], b: Set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def jaccard_similarity(a: str, b: str) -> float:
    """
    Jaccard similarity of the token sets of two strings.

    Returns 0.0 when either side has no tokens.
    """
    return set_jaccard(token_set(a), token_set(b))


def remove_html_tags(text: str) -> str:
    """Strip tags and decode the common entities from snippet text returned by lookup APIs."""
    if not text:
        return ""
    text = re.sub(r"<[^>]+>", "", text)
    text = text.replace("&amp;", "&").replace("&lt;", "<").replace("&gt;", ">")
    text = text.replace("&quot;", '"').replace("&#39;", "'")
    return text
