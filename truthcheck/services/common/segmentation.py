"""
Sentence segmentation for article text.

Candidate boundaries are runs of terminal punctuation followed by whitespace. A period
candidate is then classified: it is not a boundary when the token it closes is a known
abbreviation ("Dr.", "e.g."), a dotted acronym ("U.S.", "U.S.A.") or a single capital
initial ("J."). Decimals never produce a candidate because no whitespace follows the period.
"""

import re
from typing import Iterable, List

from truthcheck.constants.config import DEFAULT_ABBREVIATIONS, DEFAULT_MIN_SENTENCE_LENGTH

_BOUNDARY = re.compile(r"([.!?]+)([\"'”’)\]]*)(\s+)")
_PARAGRAPH = re.compile(r"\n\s*\n")
_ACRONYM = re.compile(r"^(?:[A-Za-z]\.)+[A-Za-z]$")
_LEADING_PUNCT = re.compile(r"^[\"'“‘(\[]+")
_FALLBACK_SPLIT = re.compile(r"[.!?\n;]+")


def _last_token(text: str) -> str:
    parts = text.rsplit(None, 1)
    token = parts[-1] if parts else ""
    return _LEADING_PUNCT.sub("", token)


def _is_boundary(prefix: str, punct: str, abbreviations: frozenset) -> bool:
    if punct != ".":
        return True
    token = _last_token(prefix)
    if not token:
        return True
    if token.lower() in abbreviations:
        return False
    if _ACRONYM.match(token):
        return False
    if len(token) == 1 and token.isupper():
        return False
    return True


def _split_paragraph(paragraph: str, abbreviations: frozenset) -> List[str]:
    sentences: List[str] = []
    start = 0
    for m in _BOUNDARY.finditer(paragraph):
        if not _is_boundary(paragraph[start : m.start()], m.group(1), abbreviations):
            continue
        end = m.end(2)
        sentences.append(paragraph[start:end].strip())
        start = m.end()
    tail = paragraph[start:].strip()
    if tail:
        sentences.append(tail)
    return sentences


def segment(
    text: str,
    min_length: int = DEFAULT_MIN_SENTENCE_LENGTH,
    abbreviations: Iterable[str] = DEFAULT_ABBREVIATIONS,
) -> List[str]:
    """
    Split raw article text into sentences.

    Args:
        text: Article text
        min_length: Fragments shorter than this many characters are dropped
        abbreviations: Lowercased abbreviations without their final period

    Returns:
        Sentences in document order
    """
    if not isinstance(text, str) or not text.strip():
        return []

    abbrevs = abbreviations if isinstance(abbreviations, frozenset) else frozenset(a.lower() for a in abbreviations)

    sentences: List[str] = []
    for paragraph in _PARAGRAPH.split(text):
        paragraph = " ".join(paragraph.split())
        if paragraph:
            sentences.extend(_split_paragraph(paragraph, abbrevs))

    result = [s for s in sentences if len(s) >= min_length]
    if result:
        return result

    # Unpunctuated text: fall back to a coarse split
    return [p.strip() for p in _FALLBACK_SPLIT.split(text) if len(p.strip()) >= min_length]
