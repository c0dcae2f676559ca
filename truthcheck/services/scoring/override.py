"""
Authoritative-source override.

Searches a fixed allowlist of authoritative domains for excerpts overlapping the claim.
Sufficiently relevant excerpts are validated (by the LLM, or by relevance thresholds)
and the most confident valid one replaces the aggregate score shown for the claim.
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from truthcheck.config.trusted_domains import is_authoritative_domain
from truthcheck.constants.config import (
    LLM_MAX_TOKENS_ASSESSMENT,
    OVERRIDE_CACHE_TTL_HOURS,
    OVERRIDE_MATCHES_PER_SOURCE,
    OVERRIDE_RELEVANCE_FLOOR,
    OVERRIDE_SUPPORTS_RELEVANCE,
    OVERRIDE_VALID_RELEVANCE,
    RELATIONSHIP_SCORES,
    WIKIPEDIA_SEARCH_URL,
)
from truthcheck.constants.llm_prompts import OVERRIDE_VALIDATION_PROMPT
from truthcheck.core.logger import get_logger
from truthcheck.core.observability import stage_timer
from truthcheck.core.schemas import NormalizedClaim, OverrideResult
from truthcheck.services.common.cache import CacheStore, generate_key, hash_string
from truthcheck.services.common.http_client import JsonHttpClient
from truthcheck.services.common.text_cleaner import jaccard_similarity, remove_html_tags
from truthcheck.services.llms.parsing import unwrap_json

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthoritativeMatch:
    source: str
    url: str
    excerpt: str
    relevance: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OverrideValidation:
    addresses_same_topic: bool
    relationship: str
    override_valid: bool
    confidence: float
    reasoning: str


class AuthoritativeSearchProvider(Protocol):
    # Authoritative domain this provider searches, e.g. "wikipedia.org"
    domain: str

    async def search(self, query: str) -> List[AuthoritativeMatch]: ...


class WikipediaSearchProvider:
    """Full-text search snippets from the MediaWiki search API."""

    domain = "wikipedia.org"

    def __init__(self, http: JsonHttpClient, limit: int = 5) -> None:
        self.http = http
        self.limit = limit

    async def search(self, query: str) -> List[AuthoritativeMatch]:
        data = await self.http.get_json(
            "wikipedia",
            WIKIPEDIA_SEARCH_URL,
            params={
                "action": "query",
                "list": "search",
                "srsearch": query,
                "srlimit": self.limit,
                "format": "json",
                "utf8": 1,
            },
        )
        matches: List[AuthoritativeMatch] = []
        for item in ((data or {}).get("query") or {}).get("search", []):
            title = item.get("title") or ""
            snippet = remove_html_tags(item.get("snippet") or "")
            if not snippet:
                continue
            matches.append(
                AuthoritativeMatch(
                    source=self.domain,
                    url=f"https://en.wikipedia.org/wiki/{title.replace(' ', '_')}",
                    excerpt=snippet,
                )
            )
        return matches


def _as_flag(value: Any) -> bool:
    """Only a real True or the string "true" counts; "false", 1, "yes" do not."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


def fallback_validation(relevance: float) -> OverrideValidation:
    return OverrideValidation(
        addresses_same_topic=relevance > 0.6,
        relationship="supports" if relevance > OVERRIDE_SUPPORTS_RELEVANCE else "tangential",
        override_valid=relevance > OVERRIDE_VALID_RELEVANCE,
        confidence=relevance,
        reasoning=f"Relevance score: {relevance:.2f}",
    )


class OverrideEvaluator:
    def __init__(
        self,
        providers: Sequence[AuthoritativeSearchProvider],
        llm: Any = None,
        cache: Optional[CacheStore] = None,
        relevance_floor: float = OVERRIDE_RELEVANCE_FLOOR,
    ) -> None:
        self.providers = [p for p in providers if is_authoritative_domain(p.domain)]
        dropped = [p.domain for p in providers if p not in self.providers]
        if dropped:
            logger.warning(f"[OverrideEvaluator] Ignoring non-authoritative providers: {dropped}")
        self.llm = llm
        self.cache = cache
        self.relevance_floor = relevance_floor

    # ---------------------------------------------------------------------
    # Matching
    # ---------------------------------------------------------------------

    def rank_matches(self, claim_text: str, matches: Sequence[AuthoritativeMatch]) -> List[AuthoritativeMatch]:
        """Attach relevance, drop those at or below the floor, keep the top few."""
        scored = [
            AuthoritativeMatch(m.source, m.url, m.excerpt, round(jaccard_similarity(m.excerpt, claim_text), 4))
            for m in matches
        ]
        relevant = [m for m in scored if m.relevance > self.relevance_floor]
        relevant.sort(key=lambda m: m.relevance, reverse=True)
        return relevant[:OVERRIDE_MATCHES_PER_SOURCE]

    async def _search(self, provider: AuthoritativeSearchProvider, claim: NormalizedClaim) -> List[AuthoritativeMatch]:
        query = claim.search_queries[0] if claim.search_queries else claim.original_claim
        matches = await provider.search(query)
        return self.rank_matches(claim.original_claim, matches)

    # ---------------------------------------------------------------------
    # Validation
    # ---------------------------------------------------------------------

    async def validate(self, claim: NormalizedClaim, match: AuthoritativeMatch) -> OverrideValidation:
        if self.llm is None:
            return fallback_validation(match.relevance)

        try:
            response = await self.llm.ainvoke(
                OVERRIDE_VALIDATION_PROMPT.format(source=match.source, claim=claim.original_claim, excerpt=match.excerpt),
                response_format="json",
                max_tokens=LLM_MAX_TOKENS_ASSESSMENT,
                purpose="override_validation",
            )
        except Exception as e:
            logger.warning(f"[OverrideEvaluator] LLM validation failed, using relevance thresholds: {e}")
            return fallback_validation(match.relevance)

        payload = unwrap_json(
            response,
            expect="object",
            fields=("relationship", "override_valid", "confidence", "addresses_same_topic", "reasoning"),
        )
        relationship = payload.get("relationship")
        if not isinstance(relationship, str) or relationship not in RELATIONSHIP_SCORES:
            return fallback_validation(match.relevance)
        try:
            confidence = max(0.0, min(1.0, float(payload.get("confidence", match.relevance))))
        except (TypeError, ValueError):
            confidence = match.relevance
        return OverrideValidation(
            addresses_same_topic=_as_flag(payload.get("addresses_same_topic", True)),
            relationship=relationship,
            override_valid=_as_flag(payload.get("override_valid", False)),
            confidence=confidence,
            reasoning=str(payload.get("reasoning") or ""),
        )

    # ---------------------------------------------------------------------
    # Entry point
    # ---------------------------------------------------------------------

    async def check_override(self, claim: NormalizedClaim) -> Optional[OverrideResult]:
        """
        Look for an authoritative excerpt that settles the claim.

        Returns:
            The most confident valid override, or None
        """
        if not self.providers or not claim.original_claim:
            return None

        key = generate_key("override", hash_string(claim.original_claim), "best")
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                return cached.get("override")

        with stage_timer("override_check"):
            results = await asyncio.gather(*(self._search(p, claim) for p in self.providers), return_exceptions=True)

            matches: List[AuthoritativeMatch] = []
            searched = 0
            for provider, result in zip(self.providers, results):
                if isinstance(result, Exception):
                    logger.warning(f"[OverrideEvaluator] {provider.domain} search failed: {result}")
                else:
                    searched += 1
                    matches.extend(result)

            validations = await asyncio.gather(*(self.validate(claim, m) for m in matches))

        best: Optional[OverrideResult] = None
        for match, validation in zip(matches, validations):
            if not validation.override_valid:
                continue
            if best is None or validation.confidence > best.confidence:
                best = OverrideResult(
                    source=match.source,
                    url=match.url,
                    relationship=validation.relationship,
                    confidence=validation.confidence,
                    explanation=f"Verified against {match.source}: {validation.reasoning}",
                    score=RELATIONSHIP_SCORES[validation.relationship],
                )

        if best is not None:
            logger.info(f"[OverrideEvaluator] Override from {best.source}: {best.relationship} ({best.confidence:.2f})")
        if self.cache is not None and searched:
            await self.cache.set(key, {"override": best}, OVERRIDE_CACHE_TTL_HOURS)
        return best


__all__ = [
    "AuthoritativeMatch",
    "AuthoritativeSearchProvider",
    "OverrideEvaluator",
    "OverrideValidation",
    "WikipediaSearchProvider",
    "fallback_validation",
]
