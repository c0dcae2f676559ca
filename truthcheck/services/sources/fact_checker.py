"""
Fact-checker lookup.

Providers are asked in priority order and the first hit wins. Each publisher's verdict
vocabulary is mapped onto the common 0-10 scale; unknown verdicts are neutral.
"""

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from truthcheck.config.trusted_domains import matches_domain
from truthcheck.constants.config import (
    FACTCHECK_CACHE_TTL_HOURS,
    FACTCHECK_ORG_VERDICTS,
    GOOGLE_FACTCHECK_URL,
    GOOGLE_FACTCHECK_VERDICTS,
    NEUTRAL_SCORE,
    SNOPES_VERDICTS,
)
from truthcheck.core.logger import get_logger
from truthcheck.core.schemas import ArticleContext, NormalizedClaim, SourceScore
from truthcheck.services.common.cache import CacheStore, generate_key, hash_string
from truthcheck.services.common.http_client import JsonHttpClient
from truthcheck.services.sources.base import EvidenceSource, neutral_score

logger = get_logger(__name__)

_PUBLISHER_SCALES = {
    "snopes.com": SNOPES_VERDICTS,
    "factcheck.org": FACTCHECK_ORG_VERDICTS,
}
_VERDICT_NOISE = re.compile(r"[^a-z\s-]")


def map_verdict(verdict: str, scale: Mapping[str, int] = GOOGLE_FACTCHECK_VERDICTS) -> int:
    """
    Map a publisher verdict onto 0-10.

    Exact matches win; otherwise the longest scale key contained in the verdict
    ("Mostly False." -> "mostly false"). Unknown verdicts map to the neutral score.
    """
    if not verdict:
        return NEUTRAL_SCORE
    cleaned = " ".join(_VERDICT_NOISE.sub("", verdict.lower()).split())
    if cleaned in scale:
        return scale[cleaned]
    hyphenated = cleaned.replace(" ", "-")
    if hyphenated in scale:
        return scale[hyphenated]
    for key in sorted(scale, key=len, reverse=True):
        if re.search(r"\b" + re.escape(key.replace("-", " ")) + r"\b", cleaned.replace("-", " ")):
            return scale[key]
    return NEUTRAL_SCORE


def scale_for_publisher(publisher_site: Optional[str]) -> Mapping[str, int]:
    root = matches_domain(publisher_site or "", set(_PUBLISHER_SCALES))
    return _PUBLISHER_SCALES[root] if root else GOOGLE_FACTCHECK_VERDICTS


@dataclass(frozen=True)
class FactCheckHit:
    provider: str
    publisher: str
    verdict: str
    score: int
    url: Optional[str] = None
    claim_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FactCheckProvider(Protocol):
    name: str

    async def lookup(self, query: str) -> Optional[FactCheckHit]: ...


class GoogleFactCheckProvider:
    """ClaimReview search through the Google Fact Check Tools API."""

    name = "google_factcheck"

    def __init__(self, api_key: str, http: JsonHttpClient, language: str = "en") -> None:
        self.api_key = api_key
        self.http = http
        self.language = language

    async def lookup(self, query: str) -> Optional[FactCheckHit]:
        data = await self.http.get_json(
            self.name,
            GOOGLE_FACTCHECK_URL,
            params={"query": query[:500], "key": self.api_key, "languageCode": self.language, "pageSize": 5},
        )
        for claim in (data or {}).get("claims", []):
            for review in claim.get("claimReview", []):
                rating = review.get("textualRating")
                if not rating:
                    continue
                publisher = review.get("publisher") or {}
                site = publisher.get("site") or review.get("url")
                return FactCheckHit(
                    provider=self.name,
                    publisher=publisher.get("name") or site or "unknown",
                    verdict=rating,
                    score=map_verdict(rating, scale_for_publisher(site)),
                    url=review.get("url"),
                    claim_text=claim.get("text"),
                )
        return None


class FactCheckerSource(EvidenceSource):
    name = "fact_checker"

    def __init__(self, providers: Sequence[FactCheckProvider], cache: Optional[CacheStore] = None) -> None:
        super().__init__(cache)
        self.providers = list(providers)

    async def _lookup(self, provider: FactCheckProvider, claim: NormalizedClaim) -> Optional[FactCheckHit]:
        key = generate_key("factcheck", hash_string(claim.original_claim), provider.name)
        cached = await self._cache_get(key)
        if cached is not None:
            return FactCheckHit(**cached["hit"]) if cached["hit"] else None

        query = claim.search_queries[0] if claim.search_queries else claim.original_claim
        hit = await provider.lookup(query)
        await self._cache_set(key, {"hit": hit.to_dict() if hit else None}, FACTCHECK_CACHE_TTL_HOURS)
        return hit

    async def query(self, claim: NormalizedClaim, context: ArticleContext) -> SourceScore:
        if not self.providers:
            return neutral_score("No fact-checking services configured")

        errors: List[str] = []
        for provider in self.providers:
            try:
                hit = await self._lookup(provider, claim)
            except Exception as e:
                logger.warning(f"[FactChecker] {provider.name} lookup failed: {e}")
                errors.append(f"{provider.name}: {e}")
                continue

            if hit is not None:
                logger.info(f"[FactChecker] {hit.publisher} rated claim '{hit.verdict}' -> {hit.score}")
                return SourceScore(
                    score=hit.score,
                    confidence="high",
                    explanation=f'{hit.publisher} rated a matching claim "{hit.verdict}"',
                    url=hit.url,
                    details=hit.to_dict(),
                )

        if len(errors) == len(self.providers):
            return SourceScore.failed("; ".join(errors), "Fact-checking services unavailable")
        return neutral_score("No fact-check found for this claim", {"providers": [p.name for p in self.providers]})
