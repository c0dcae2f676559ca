"""
Document-level claim extraction.

Segments the document, scores every sentence, keeps the accepted ones and ranks them.
In hybrid mode a low aggregate heuristic confidence escalates to the LLM; its claims are
merged with the heuristic ones, near-duplicates removed, and the list re-ranked.
Any LLM problem leaves the heuristic result untouched.
"""

import re
from typing import Any, List, Optional, Sequence

from truthcheck.constants.config import (
    CLAIM_CACHE_TTL_HOURS,
    CLAIM_DEDUP_THRESHOLD,
    DEFAULT_MIN_SENTENCE_LENGTH,
    HIGH_CONFIDENCE_CLAIM,
    LLM_MAX_TOKENS_EXTRACTION,
)
from truthcheck.constants.llm_prompts import CLAIM_CLASSIFICATION_PROMPT
from truthcheck.core.logger import get_logger
from truthcheck.core.observability import stage_timer
from truthcheck.core.schemas import ClaimCandidate
from truthcheck.services.common.cache import CacheStore, generate_key, hash_string
from truthcheck.services.common.dedup import dedup_by_similarity
from truthcheck.services.common.segmentation import segment
from truthcheck.services.extraction.candidate_scorer import ClaimCandidateScorer, is_statistical
from truthcheck.services.llms.parsing import unwrap_json

logger = get_logger(__name__)


def _clamp01(v: float) -> float:
    return max(0.0, min(1.0, float(v)))


def locate(text: str, sentence: str, start: int = 0) -> int:
    """Character offset of `sentence` in `text`, tolerant of whitespace differences. -1 if absent."""
    pos = text.find(sentence, start)
    if pos >= 0:
        return pos
    words = sentence.split()
    if not words:
        return -1
    m = re.compile(r"\s+".join(re.escape(w) for w in words)).search(text, start)
    if m:
        return m.start()
    return -1 if start == 0 else locate(text, sentence, 0)


def rank_claims(claims: Sequence[ClaimCandidate], max_claims: int) -> List[ClaimCandidate]:
    """Sort by confidence, descending (stable, so ties keep document order) and truncate."""
    return sorted(claims, key=lambda c: c.confidence, reverse=True)[:max_claims]


def merge_claims(
    primary: Sequence[ClaimCandidate],
    secondary: Sequence[ClaimCandidate],
    max_claims: int,
    similarity_threshold: float = CLAIM_DEDUP_THRESHOLD,
) -> List[ClaimCandidate]:
    """Concatenate, drop near-duplicates keeping the primary copy, then rank."""
    unique = dedup_by_similarity(list(primary) + list(secondary), lambda c: c.text, similarity_threshold)
    return rank_claims(unique, max_claims)


class ClaimExtractor:
    def __init__(
        self,
        scorer: Optional[ClaimCandidateScorer] = None,
        llm: Any = None,
        cache: Optional[CacheStore] = None,
        method: str = "hybrid",
        heuristic_threshold: float = 0.6,
        min_sentence_length: int = DEFAULT_MIN_SENTENCE_LENGTH,
        excerpt_chars: int = 3000,
        max_claims: Optional[int] = None,
    ) -> None:
        self.scorer = scorer or ClaimCandidateScorer()
        self.llm = llm
        self.cache = cache
        self.method = method
        self.heuristic_threshold = heuristic_threshold
        self.min_sentence_length = min_sentence_length
        self.excerpt_chars = excerpt_chars
        self.max_claims = max_claims or self.scorer.profile.max_claims

    @classmethod
    def from_settings(cls, settings: Any, llm: Any = None, cache: Optional[CacheStore] = None) -> "ClaimExtractor":
        scorer = ClaimCandidateScorer(
            profile=settings.SENSITIVITY,
            min_length=settings.MIN_CLAIM_LENGTH,
            max_length=settings.MAX_CLAIM_LENGTH,
        )
        return cls(
            scorer=scorer,
            llm=llm,
            cache=cache,
            method=settings.EXTRACTION_METHOD,
            heuristic_threshold=settings.HEURISTIC_THRESHOLD,
            excerpt_chars=settings.LLM_EXCERPT_CHARS,
        )

    # ---------------------------------------------------------------------
    # Heuristic path
    # ---------------------------------------------------------------------

    def extract_heuristic(self, text: str) -> List[ClaimCandidate]:
        if not isinstance(text, str) or not text.strip():
            return []

        claims: List[ClaimCandidate] = []
        cursor = 0
        for sentence in segment(text, min_length=min(self.scorer.min_length, self.min_sentence_length)):
            position = locate(text, sentence, cursor)
            if position >= 0:
                cursor = position + len(sentence)

            result = self.scorer.score(sentence)
            if result.is_claim:
                claims.append(
                    ClaimCandidate(text=sentence, confidence=result.confidence, method="heuristic", position=position)
                )

        return rank_claims(claims, self.max_claims)

    @staticmethod
    def evaluate_heuristic_confidence(claims: Sequence[ClaimCandidate], text: str) -> float:
        """
        How much the heuristic result can be trusted on its own.

        Mean claim confidence, plus bonuses for statistical claims and for several
        high-confidence claims, minus a penalty when the document yields too few claims
        for its length (about one per 300 characters is expected).
        """
        if not claims:
            return 0.0

        avg_confidence = sum(c.confidence for c in claims) / len(claims)
        statistical = sum(1 for c in claims if is_statistical(c.text))
        statistical_bonus = min(0.3, statistical * 0.08)
        high_conf = sum(1 for c in claims if c.confidence >= HIGH_CONFIDENCE_CLAIM)
        high_conf_bonus = min(0.2, high_conf * 0.05)
        claims_ratio = len(claims) / max(1.0, len(text) / 300)
        length_penalty = max(0.0, 0.2 - claims_ratio)

        return _clamp01(avg_confidence + statistical_bonus + high_conf_bonus - length_penalty)

    # ---------------------------------------------------------------------
    # Hybrid path
    # ---------------------------------------------------------------------

    def _to_candidates(self, items: List[Any], text: str) -> List[ClaimCandidate]:
        candidates: List[ClaimCandidate] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            claim_text = item.get("text")
            if not isinstance(claim_text, str) or len(claim_text.strip()) < self.scorer.min_length:
                continue
            claim_text = claim_text.strip()
            try:
                confidence = _clamp01(item.get("confidence", 0.7))
            except (TypeError, ValueError):
                confidence = 0.5
            claim_type = item.get("type")
            candidates.append(
                ClaimCandidate(
                    text=claim_text,
                    confidence=confidence,
                    method="external",
                    position=locate(text, claim_text),
                    claim_type=claim_type if isinstance(claim_type, str) else None,
                )
            )
        return candidates

    async def _extract_external(self, text: str) -> List[ClaimCandidate]:
        key = generate_key("claim", hash_string(text))
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                logger.info(f"[ClaimExtractor] Using cached LLM claims ({len(cached)})")
                return list(cached)

        prompt = CLAIM_CLASSIFICATION_PROMPT.format(text=text[: self.excerpt_chars])
        response = await self.llm.ainvoke(
            prompt, response_format="text", max_tokens=LLM_MAX_TOKENS_EXTRACTION, purpose="claim_extraction"
        )
        items = unwrap_json(response, expect="array", fields=("text", "confidence", "type"))
        candidates = self._to_candidates(items, text)

        if self.cache is not None and candidates:
            await self.cache.set(key, tuple(candidates), CLAIM_CACHE_TTL_HOURS)
        return candidates

    async def extract(self, text: str) -> List[ClaimCandidate]:
        """
        Extract ranked claims from a document.

        Args:
            text: Full article text

        Returns:
            Claims sorted by confidence, truncated to the profile's maximum
        """
        if not isinstance(text, str) or not text.strip():
            return []

        with stage_timer("claim_extraction"):
            heuristic = self.extract_heuristic(text)

        if self.method != "hybrid" or self.llm is None:
            return heuristic

        aggregate = self.evaluate_heuristic_confidence(heuristic, text)
        if aggregate >= self.heuristic_threshold:
            logger.info(f"[ClaimExtractor] Heuristic confidence {aggregate:.2f}, {len(heuristic)} claims")
            return heuristic

        logger.info(f"[ClaimExtractor] Heuristic confidence {aggregate:.2f} below threshold, escalating to LLM")
        try:
            with stage_timer("claim_extraction_llm"):
                external = await self._extract_external(text)
        except Exception as e:
            logger.warning(f"[ClaimExtractor] LLM extraction failed, keeping heuristic claims: {e}")
            return heuristic

        merged = merge_claims(heuristic, external, self.max_claims)
        logger.info(
            f"[ClaimExtractor] Merged {len(heuristic)} heuristic + {len(external)} LLM claims into {len(merged)}"
        )
        return merged
