"""
Claim-likeness scoring for a single sentence.

A weighted-signal model: reporting verbs and claim markers dominate, quantitative
patterns follow, then named entities, dates and quotations, plus a structural score.
The raw sum is capped before normalization so sentences stacking many signals do not
crowd the top of the range. Pure and deterministic: no I/O, no state.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from truthcheck.constants.config import (
    CLAIM_MARKERS,
    FACTUAL_VERBS,
    LARGE_NUMBER_THRESHOLD,
    LARGE_NUMBER_UNITS,
    OPINION_MARKERS,
    OPINION_PENALTY,
    PREPOSITIONS,
    RAW_CONFIDENCE_CAP,
    SENSITIVITY_PROFILES,
    SIGNAL_WEIGHTS,
    SensitivityProfile,
)
from truthcheck.services.common.text_cleaner import word_tokens

_PERCENTAGE = re.compile(r"\d+(?:\.\d+)?\s*(?:%|percent\b|per\s+cent\b)", re.IGNORECASE)
_NUMBER_WITH_UNIT = re.compile(
    r"(\d{1,3}(?:,\d{3})+|\d+(?:\.\d+)?)\s*(" + "|".join(LARGE_NUMBER_UNITS) + r")\b", re.IGNORECASE
)
_SCALE_UNITS = {"thousand", "million", "billion", "trillion"}
_NAMED_ENTITY = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b")
_QUOTATION = re.compile(r"[\"“][^\"”]{3,}[\"”]")
_DATE_PATTERNS = (
    re.compile(r"\b(?:January|February|March|April|May|June|July|August|September|October|November|December)\b"),
    re.compile(r"\b(?:Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)\.?\s+\d{1,2}\b"),
    re.compile(r"\b(?:1[89]\d{2}|20\d{2})s?\b"),
    re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b"),
    re.compile(r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b", re.IGNORECASE),
    re.compile(r"\b(?:last|this|next)\s+(?:week|month|year|decade|century)\b", re.IGNORECASE),
)
_ALL_CAPS = re.compile(r"\b[A-Z]{6,}\b")
_TRAILING_CLOSERS = "\"'”’)] "

# Statistical content, used for the document-level confidence bonus
STATISTICAL_PATTERNS = (
    re.compile(r"\d+%|\d+\s*percent", re.IGNORECASE),
    re.compile(r"\$[\d,]+(?:\.\d+)?"),
    re.compile(r"[\d,]+\s*(?:people|cases|deaths|patients|citizens|workers|students|voters)", re.IGNORECASE),
    re.compile(r"\d+\.\d+\s*(?:degrees?|years?|months?|days?|hours?|minutes?)", re.IGNORECASE),
    re.compile(r"\d+\s*(?:times?|fold|percent)\s*(?:higher|lower|more|less|increase|decrease)", re.IGNORECASE),
    re.compile(r"(?:increased|decreased|rose|fell|grew|declined|surged|plummeted)\s*by\s*\d+", re.IGNORECASE),
    re.compile(r"(?:since|over|during|in)\s*\d{4}", re.IGNORECASE),
    re.compile(r"(?:over|in)\s*(?:the\s*)?(?:past|last)\s*\d+\s*(?:years?|months?|decades?)", re.IGNORECASE),
    re.compile(r"(?:millions?|billions?|thousands?)\s*of", re.IGNORECASE),
    re.compile(r"\d+\s*(?:out\s*of|of)\s*\d+", re.IGNORECASE),
    re.compile(r"\d{4}"),
    re.compile(r"\d+\s*steps?", re.IGNORECASE),
    re.compile(r"\d+\s*others?", re.IGNORECASE),
)


def _phrase_pattern(phrases: Tuple[str, ...]) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(re.escape(p) for p in phrases) + r")\b", re.IGNORECASE)


_CLAIM_MARKER_RE = _phrase_pattern(CLAIM_MARKERS)
_OPINION_RE = _phrase_pattern(OPINION_MARKERS)


def _clamp01(v: float) -> float:
    return max(0.0, min(1.0, float(v)))


def is_statistical(text: str) -> bool:
    return any(p.search(text) for p in STATISTICAL_PATTERNS)


def is_question(sentence: str) -> bool:
    return sentence.rstrip(_TRAILING_CLOSERS).endswith("?")


def has_large_number(sentence: str) -> bool:
    for m in _NUMBER_WITH_UNIT.finditer(sentence):
        if m.group(2).lower() in _SCALE_UNITS:
            return True
        if float(m.group(1).replace(",", "")) >= LARGE_NUMBER_THRESHOLD:
            return True
    return False


def has_date_reference(sentence: str) -> bool:
    return any(p.search(sentence) for p in _DATE_PATTERNS)


def structure_score(sentence: str) -> float:
    """Sentence-shape score in [0, 1]; rewards mid-length, detailed, calm sentences."""
    words = sentence.split()
    n = len(words)
    score = 0.6

    if 5 <= n <= 30:
        score += 0.25
    elif 30 < n <= 50:
        score += 0.15
    if "," in sentence:
        score += 0.15
    if any(ch.isdigit() for ch in sentence):
        score += 0.2
    if PREPOSITIONS.intersection(word_tokens(sentence)):
        score += 0.15

    if n < 4:
        score -= 0.2
    if sentence.count("!") > 2:
        score -= 0.15
    if len(_ALL_CAPS.findall(sentence)) > 1:
        score -= 0.15

    return _clamp01(score)


@dataclass(frozen=True)
class ClaimSignals:
    factual_verbs: Tuple[str, ...] = ()
    claim_markers: Tuple[str, ...] = ()
    percentage: bool = False
    large_number: bool = False
    named_entity: bool = False
    date_reference: bool = False
    quotation: bool = False
    opinion: bool = False
    question: bool = False
    structure: float = 0.0
    reason: Optional[str] = None

    @property
    def has_factual_verb(self) -> bool:
        return bool(self.factual_verbs)

    @property
    def has_claim_marker(self) -> bool:
        return bool(self.claim_markers)

    @property
    def secondary_count(self) -> int:
        return sum(
            (self.percentage, self.large_number, self.named_entity, self.date_reference, self.quotation)
        )


@dataclass(frozen=True)
class CandidateScore:
    is_claim: bool
    confidence: float
    signals: ClaimSignals = field(default_factory=ClaimSignals)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ClaimCandidateScorer:
    """
    Scores sentences for claim-likeness.

    Args:
        profile: Sensitivity profile, or its name ("high", "balanced", "strict")
        weights: Signal weights; defaults keep verb > marker > percentage > large number
        min_length: Sentences shorter than this are rejected
        max_length: Sentences longer than this are rejected
    """

    def __init__(
        self,
        profile: SensitivityProfile | str = "balanced",
        weights: Optional[Mapping[str, float]] = None,
        min_length: int = 20,
        max_length: int = 400,
    ) -> None:
        self.profile = SENSITIVITY_PROFILES[profile] if isinstance(profile, str) else profile
        self.weights = dict(SIGNAL_WEIGHTS)
        if weights:
            self.weights.update(weights)
        self.min_length = min_length
        self.max_length = max_length

    def signals(self, sentence: str) -> ClaimSignals:
        tokens = word_tokens(sentence)
        return ClaimSignals(
            factual_verbs=tuple(sorted(FACTUAL_VERBS.intersection(tokens))),
            claim_markers=tuple(m.group(0).lower() for m in _CLAIM_MARKER_RE.finditer(sentence)),
            percentage=bool(_PERCENTAGE.search(sentence)),
            large_number=has_large_number(sentence),
            named_entity=bool(_NAMED_ENTITY.search(sentence)),
            date_reference=has_date_reference(sentence),
            quotation=bool(_QUOTATION.search(sentence)),
            opinion=bool(_OPINION_RE.search(sentence)),
            question=is_question(sentence),
            structure=structure_score(sentence),
        )

    def confidence(self, signals: ClaimSignals) -> float:
        w = self.weights
        raw = 0.0
        if signals.has_factual_verb:
            raw += w["factual_verb"]
        if signals.has_claim_marker:
            raw += w["claim_marker"]
        if signals.percentage:
            raw += w["percentage"]
        if signals.large_number:
            raw += w["large_number"]
        if signals.named_entity:
            raw += w["named_entity"]
        if signals.date_reference:
            raw += w["date_reference"]
        if signals.quotation:
            raw += w["quotation"]
        raw += w["structure"] * signals.structure

        if signals.opinion:
            raw *= OPINION_PENALTY

        return round(min(raw, RAW_CONFIDENCE_CAP) / RAW_CONFIDENCE_CAP, 4)

    def score(self, sentence: str) -> CandidateScore:
        if not isinstance(sentence, str) or not sentence.strip():
            return CandidateScore(False, 0.0, ClaimSignals(reason="empty"))

        sentence = sentence.strip()
        signals = self.signals(sentence)
        confidence = self.confidence(signals)

        reason = None
        if signals.question:
            reason = "question"
        elif len(sentence) < self.min_length:
            reason = "too_short"
        elif len(sentence) > self.max_length:
            reason = "too_long"
        elif not (
            signals.has_factual_verb
            or signals.has_claim_marker
            or signals.secondary_count >= 2
            or signals.percentage
            or signals.large_number
        ):
            reason = "no_claim_signal"
        elif confidence < self.profile.acceptance_floor:
            reason = "below_floor"

        if reason:
            signals = replace(signals, reason=reason)
        return CandidateScore(is_claim=reason is None, confidence=confidence, signals=signals)
