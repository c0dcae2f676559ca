"""
Coherence / red-flag analysis of the article text surrounding a claim.

The LLM looks for manipulation indicators when configured. The fallback matches
phrase lists per flag type and subtracts severity-weighted penalties from 10.
"""

import re
from typing import Any, Dict, List, Optional

from truthcheck.constants.config import (
    COHERENCE_CACHE_TTL_HOURS,
    COHERENCE_MIN_TEXT_LENGTH,
    COHERENCE_SEVERITY_FACTOR,
    COHERENCE_WINDOW_CHARS,
    LLM_MAX_TOKENS_ASSESSMENT,
    RED_FLAG_PHRASES,
)
from truthcheck.constants.llm_prompts import RED_FLAG_DETECTION_PROMPT
from truthcheck.core.logger import get_logger
from truthcheck.core.schemas import ArticleContext, NormalizedClaim, SourceScore
from truthcheck.services.common.cache import CacheStore, generate_key, hash_string
from truthcheck.services.common.text_cleaner import normalize_text
from truthcheck.services.llms.parsing import unwrap_json
from truthcheck.services.sources.base import EvidenceSource, clamp_score

logger = get_logger(__name__)

_EXCLAMATION_RUN = re.compile(r"!{3,}")
_SHOUTING = re.compile(r"\b[A-Z]{6,}\b")


def detect_red_flags(text: str) -> List[Dict[str, Any]]:
    """Phrase-list red flags, one entry per matched phrase."""
    lowered = text.lower()
    flags: List[Dict[str, Any]] = []

    for flag_type, (severity, phrases) in RED_FLAG_PHRASES.items():
        for phrase in phrases:
            if phrase in lowered:
                flags.append({"flag_type": flag_type, "severity": severity, "example": phrase})

    if _EXCLAMATION_RUN.search(text):
        flags.append({"flag_type": "emotional_manipulation", "severity": 2, "example": "!!!"})
    shouting = _SHOUTING.findall(text)
    if len(shouting) > 1:
        flags.append({"flag_type": "sensational_language", "severity": 2, "example": " ".join(shouting[:3])})

    return flags


def red_flag_penalty(flags: List[Dict[str, Any]]) -> float:
    total = 0.0
    for flag in flags:
        try:
            severity = max(1.0, min(5.0, float(flag.get("severity", 1))))
        except (TypeError, ValueError):
            severity = 1.0
        total += severity * COHERENCE_SEVERITY_FACTOR
    return total


def excerpt_around(document: str, claim: str, window: int = COHERENCE_WINDOW_CHARS) -> str:
    """The part of the document centered on the claim, or the claim alone without a document."""
    document = normalize_text(document)
    if not document:
        return claim
    pos = document.find(claim)
    if pos < 0:
        return document[:window]
    start = max(0, pos + len(claim) // 2 - window // 2)
    return document[start : start + window]


class CoherenceSource(EvidenceSource):
    name = "coherence"

    def __init__(self, llm: Any = None, cache: Optional[CacheStore] = None) -> None:
        super().__init__(cache)
        self.llm = llm

    def assess_fallback(self, text: str) -> SourceScore:
        flags = detect_red_flags(text)
        penalty = red_flag_penalty(flags)
        score = max(0.0, 10.0 - penalty)
        return SourceScore(
            score=round(score, 2),
            confidence="medium" if len(text) >= COHERENCE_MIN_TEXT_LENGTH else "low",
            explanation=f"{len(flags)} red flag(s) detected" if flags else "No red flags detected",
            details={"method": "phrase_list", "red_flags": flags},
        )

    async def _assess_with_llm(self, text: str) -> Optional[SourceScore]:
        try:
            response = await self.llm.ainvoke(
                RED_FLAG_DETECTION_PROMPT.format(text=text),
                response_format="json",
                max_tokens=LLM_MAX_TOKENS_ASSESSMENT,
                purpose="red_flag_detection",
            )
        except Exception as e:
            logger.warning(f"[Coherence] LLM red-flag detection failed, using phrase lists: {e}")
            return None

        payload = unwrap_json(response, expect="object", fields=("coherence_score", "manipulation_risk"))
        if not isinstance(payload, dict):
            return None
        raw_flags = payload.get("red_flags_detected", [])
        if raw_flags is None:
            raw_flags = []
        if not isinstance(raw_flags, list):
            logger.warning(f"[Coherence] Malformed red_flags_detected ({type(raw_flags).__name__}), using phrase lists")
            return None
        flags = [f for f in raw_flags if isinstance(f, dict)]
        score = clamp_score(payload.get("coherence_score"))
        if score is None:
            if not payload:
                return None
            score = max(0.0, 10.0 - red_flag_penalty(flags))

        return SourceScore(
            score=round(score, 2),
            confidence="high" if len(text) >= COHERENCE_MIN_TEXT_LENGTH else "medium",
            explanation=f"{len(flags)} red flag(s), manipulation risk {payload.get('manipulation_risk', 'unknown')}",
            details={"method": "llm", "red_flags": flags, "manipulation_risk": payload.get("manipulation_risk")},
        )

    async def query(self, claim: NormalizedClaim, context: ArticleContext) -> SourceScore:
        text = excerpt_around(context.document_text, claim.original_claim)

        key = generate_key("coherence", hash_string(text))
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        result = None
        if self.llm is not None:
            result = await self._assess_with_llm(text)
        if result is None:
            result = self.assess_fallback(text)

        await self._cache_set(key, result, COHERENCE_CACHE_TTL_HOURS)
        return result
