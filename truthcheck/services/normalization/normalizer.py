"""
Claim normalization: canonical text, entities, search queries and a claim type.

The heuristic pass is pure. When it finds no entities or its confidence is low and an
LLM is configured, the LLM result is merged in: entities are unioned, confidence is the
max of both, and every other field prefers the LLM value when it is usable.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Dict, List, Optional, Sequence

from truthcheck.constants.config import (
    CLAIM_TYPE_KEYWORDS,
    COMMON_CAPITALIZED,
    FILLER_WORDS,
    HEURISTIC_CONFIDENCE_WITH_ENTITIES,
    HEURISTIC_CONFIDENCE_WITHOUT_ENTITIES,
    LLM_MAX_TOKENS_NORMALIZATION,
    MAX_SEARCH_QUERIES,
    NORMALIZED_CACHE_TTL_HOURS,
    SCIENTIFIC_TERMS,
)
from truthcheck.constants.llm_prompts import QUERY_NORMALIZATION_PROMPT
from truthcheck.core.logger import get_logger
from truthcheck.core.observability import stage_timer
from truthcheck.core.schemas import CLAIM_TYPES, Entity, NormalizedClaim
from truthcheck.services.common.cache import CacheStore, generate_key, hash_string
from truthcheck.services.common.list_ops import dedupe_list
from truthcheck.services.common.text_cleaner import normalize_text
from truthcheck.services.llms.parsing import unwrap_json

logger = get_logger(__name__)

_NUMBER = re.compile(
    r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)\s*(%|percent\b|thousand\b|million\b|billion\b|trillion\b)?",
    re.IGNORECASE,
)
_QUOTE = re.compile(r"[\"“]([^\"”]+)[\"”]")
_PROPER_NOUN = re.compile(r"\b([A-Z][a-z]+)\b")
_SCIENTIFIC = re.compile(r"\b(" + "|".join(SCIENTIFIC_TERMS) + r")\b", re.IGNORECASE)
_NON_DECIMAL_PERIOD = re.compile(r"(?<!\d)\.|\.(?!\d)")
_DISALLOWED = re.compile(r"[^\w\s\-+%$.]")
_TYPE_PATTERNS = [
    (claim_type, re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")\b"))
    for claim_type, keywords in CLAIM_TYPE_KEYWORDS
]
_ENTITY_TYPES = {"number", "quote", "proper_noun", "scientific_term"}


# -------------------------------------------------------------------------
# Heuristic helpers
# -------------------------------------------------------------------------


def simplify_claim(claim: str) -> str:
    """Lowercase, drop filler words and punctuation (decimal points survive)."""
    words = [w for w in claim.lower().split() if w not in FILLER_WORDS]
    simplified = " ".join(words)
    simplified = _NON_DECIMAL_PERIOD.sub("", simplified)
    simplified = _DISALLOWED.sub("", simplified)
    return " ".join(simplified.split())


def extract_entities(claim: str) -> List[Entity]:
    entities: List[Entity] = []

    for m in _NUMBER.finditer(claim):
        unit = m.group(2).lower() if m.group(2) else None
        entities.append(Entity(type="number", value=m.group(1), unit=unit))

    for m in _QUOTE.finditer(claim):
        entities.append(Entity(type="quote", value=m.group(1).strip()))

    for m in _PROPER_NOUN.finditer(claim):
        word = m.group(1)
        if word not in COMMON_CAPITALIZED:
            entities.append(Entity(type="proper_noun", value=word))

    for m in _SCIENTIFIC.finditer(claim):
        entities.append(Entity(type="scientific_term", value=m.group(1).lower()))

    return dedupe_list(entities)


def build_search_queries(claim: str, simplified: str, entities: Sequence[Entity]) -> List[str]:
    queries = [normalize_text(claim)]
    if simplified and simplified != queries[0]:
        queries.append(simplified)
    if entities:
        queries.append(" ".join(e.value for e in entities))
    return [q for q in dedupe_list(queries) if q][:MAX_SEARCH_QUERIES]


def classify_claim_type(claim: str) -> str:
    lowered = claim.lower()
    for claim_type, pattern in _TYPE_PATTERNS:
        if pattern.search(lowered):
            return claim_type
    return "other"


def _entity_from_external(raw: Any) -> Optional[Entity]:
    if isinstance(raw, str) and raw.strip():
        value = raw.strip()
        return Entity(type="number" if value[0].isdigit() else "proper_noun", value=value)
    if isinstance(raw, dict):
        value = raw.get("value") or raw.get("text") or raw.get("name")
        if not isinstance(value, str) or not value.strip():
            return None
        etype = raw.get("type")
        if not isinstance(etype, str) or etype not in _ENTITY_TYPES:
            etype = "proper_noun"
        unit = raw.get("unit") if isinstance(raw.get("unit"), str) else None
        return Entity(type=etype, value=value.strip(), unit=unit)
    return None


class ClaimNormalizer:
    def __init__(
        self,
        llm: Any = None,
        cache: Optional[CacheStore] = None,
        confidence_threshold: float = 0.7,
        llm_timeout: Optional[float] = 15.0,
    ) -> None:
        self.llm = llm
        self.cache = cache
        self.confidence_threshold = confidence_threshold
        self.llm_timeout = llm_timeout

    def normalize_heuristic(self, claim: str) -> NormalizedClaim:
        text = normalize_text(claim)
        simplified = simplify_claim(text) or text.lower()
        entities = extract_entities(text)
        return NormalizedClaim(
            original_claim=text,
            normalized_claim=simplified,
            entities=entities,
            search_queries=build_search_queries(text, simplified, entities),
            claim_type=classify_claim_type(text),
            confidence=HEURISTIC_CONFIDENCE_WITH_ENTITIES if entities else HEURISTIC_CONFIDENCE_WITHOUT_ENTITIES,
        )

    def _needs_escalation(self, heuristic: NormalizedClaim) -> bool:
        return not heuristic.entities or heuristic.confidence < self.confidence_threshold

    @staticmethod
    def merge(heuristic: NormalizedClaim, external: Dict[str, Any]) -> NormalizedClaim:
        """Combine the heuristic result with a parsed LLM payload."""
        raw_entities = external.get("key_entities")
        if not isinstance(raw_entities, list):
            raw_entities = []
        ext_entities = [e for e in (_entity_from_external(r) for r in raw_entities) if e]

        normalized = external.get("normalized_claim")
        if not isinstance(normalized, str) or not normalized.strip():
            normalized = heuristic.normalized_claim

        raw_queries = external.get("search_queries")
        if not isinstance(raw_queries, list):
            raw_queries = []
        queries = [q.strip() for q in raw_queries if isinstance(q, str) and q.strip()]
        queries = dedupe_list(queries)[:MAX_SEARCH_QUERIES] or heuristic.search_queries

        claim_type = external.get("claim_type")
        if not isinstance(claim_type, str) or claim_type not in CLAIM_TYPES:
            claim_type = heuristic.claim_type

        try:
            ext_confidence = float(external.get("confidence", 0.7))
        except (TypeError, ValueError):
            ext_confidence = 0.7

        return NormalizedClaim(
            original_claim=heuristic.original_claim,
            normalized_claim=normalized.strip(),
            entities=dedupe_list(list(heuristic.entities) + ext_entities),
            search_queries=queries,
            claim_type=claim_type,
            confidence=max(heuristic.confidence, min(1.0, max(0.0, ext_confidence))),
            external=True,
        )

    async def _normalize_external(self, heuristic: NormalizedClaim) -> NormalizedClaim:
        try:
            response = await asyncio.wait_for(
                self.llm.ainvoke(
                    QUERY_NORMALIZATION_PROMPT.format(claim=heuristic.original_claim),
                    response_format="json",
                    max_tokens=LLM_MAX_TOKENS_NORMALIZATION,
                    purpose="normalization",
                ),
                timeout=self.llm_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[ClaimNormalizer] LLM normalization timed out after {self.llm_timeout}s, using heuristics")
            return heuristic
        except Exception as e:
            logger.warning(f"[ClaimNormalizer] LLM normalization failed, using heuristics: {e}")
            return heuristic

        payload = unwrap_json(
            response, expect="object", fields=("normalized_claim", "claim_type", "confidence")
        )
        if not payload:
            return heuristic
        try:
            return self.merge(heuristic, payload)
        except (TypeError, ValueError) as e:
            logger.warning(f"[ClaimNormalizer] Unusable LLM normalization payload, using heuristics: {e}")
            return heuristic

    async def normalize(self, claim: str) -> NormalizedClaim:
        """
        Normalize one claim, memoized by claim text.

        Args:
            claim: Raw claim sentence

        Returns:
            NormalizedClaim; claim_type is always set
        """
        if not isinstance(claim, str):
            claim = ""

        key = generate_key("normalized", hash_string(claim))
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                return cached

        with stage_timer("normalization"):
            result = self.normalize_heuristic(claim)

        if result.original_claim and self.llm is not None and self._needs_escalation(result):
            result = await self._normalize_external(result)

        if self.cache is not None and result.original_claim:
            await self.cache.set(key, result, NORMALIZED_CACHE_TTL_HOURS)
        return result

    async def normalize_batch(self, claims: Sequence[str]) -> List[Optional[NormalizedClaim]]:
        """Normalize concurrently; a claim that fails yields None in its slot."""
        results = await asyncio.gather(*(self.normalize(c) for c in claims), return_exceptions=True)
        out: List[Optional[NormalizedClaim]] = []
        for claim, result in zip(claims, results):
            if isinstance(result, Exception):
                logger.warning(f"[ClaimNormalizer] Failed to normalize '{claim[:60]}': {result}")
                out.append(None)
            else:
                out.append(result)
        return out


def normalization_stats(claims: Sequence[NormalizedClaim]) -> Dict[str, Any]:
    types: Dict[str, int] = {}
    entities = 0
    total_confidence = 0.0
    for claim in claims:
        types[claim.claim_type] = types.get(claim.claim_type, 0) + 1
        entities += len(claim.entities)
        total_confidence += claim.confidence
    return {
        "total": len(claims),
        "types": types,
        "entities": entities,
        "avg_confidence": total_confidence / len(claims) if claims else 0.0,
    }
