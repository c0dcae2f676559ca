"""
Credibility of the domain hosting the article (not of the claim itself).

Every provider rates the domain on 0-10 or returns None when it has no opinion. The
score is the mean of the providers that answered; confidence grows with their number.
"""

import asyncio
from typing import Dict, List, Optional, Protocol, Sequence

from truthcheck.config.trusted_domains import (
    factual_reporting_for,
    is_authoritative_domain,
    normalize_domain,
)
from truthcheck.constants.config import CREDIBILITY_CACHE_TTL_HOURS, FACTUAL_REPORTING_SCORES
from truthcheck.core.logger import get_logger
from truthcheck.core.schemas import ArticleContext, NormalizedClaim, SourceScore
from truthcheck.services.common.cache import CacheStore, generate_key
from truthcheck.services.common.http_client import JsonHttpClient
from truthcheck.services.sources.base import EvidenceSource, clamp_score, neutral_score

logger = get_logger(__name__)


class CredibilityProvider(Protocol):
    name: str

    async def rate(self, domain: str) -> Optional[float]: ...


class RatingTableProvider:
    """Built-in ratings: authoritative institutions plus factual-reporting grades of news outlets."""

    name = "rating_table"

    async def rate(self, domain: str) -> Optional[float]:
        if is_authoritative_domain(domain):
            return 9.0
        grade = factual_reporting_for(domain)
        if grade is None:
            return None
        return float(FACTUAL_REPORTING_SCORES.get(grade, 5))


class NewsGuardProvider:
    """HTTP rating backend answering GET {base_url}/ratings/{domain} with a 0-100 score."""

    name = "newsguard"

    def __init__(self, base_url: str, http: JsonHttpClient, api_key: Optional[str] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http
        self.api_key = api_key

    async def rate(self, domain: str) -> Optional[float]:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
        data = await self.http.get_json(self.name, f"{self.base_url}/ratings/{domain}", headers=headers)
        raw = (data or {}).get("score")
        if not isinstance(raw, (int, float)):
            return None
        return clamp_score(raw / 10)


class CredibilitySource(EvidenceSource):
    name = "source_credibility"

    def __init__(self, providers: Sequence[CredibilityProvider], cache: Optional[CacheStore] = None) -> None:
        super().__init__(cache)
        self.providers = list(providers)

    async def query(self, claim: NormalizedClaim, context: ArticleContext) -> SourceScore:
        domain = normalize_domain(context.domain or "")
        if not domain:
            return neutral_score("No source domain provided")

        key = generate_key("credibility", domain)
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        results = await asyncio.gather(*(p.rate(domain) for p in self.providers), return_exceptions=True)

        ratings: Dict[str, float] = {}
        errors: List[str] = []
        for provider, result in zip(self.providers, results):
            if isinstance(result, Exception):
                logger.warning(f"[Credibility] {provider.name} failed for {domain}: {result}")
                errors.append(f"{provider.name}: {result}")
            elif result is not None:
                ratings[provider.name] = result

        if not ratings:
            if self.providers and len(errors) == len(self.providers):
                return SourceScore.failed("; ".join(errors), "Credibility services unavailable")
            outcome = neutral_score("No credibility data available", {"domain": domain})
        else:
            avg = sum(ratings.values()) / len(ratings)
            outcome = SourceScore(
                score=round(avg, 2),
                confidence="high" if len(ratings) > 1 else "medium",
                explanation=f"{domain} rated {avg:.1f}/10 by {len(ratings)} credibility source(s)",
                details={"domain": domain, "providers": ratings},
            )

        await self._cache_set(key, outcome, CREDIBILITY_CACHE_TTL_HOURS)
        return outcome
