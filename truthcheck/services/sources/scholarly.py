"""
Scholarly evidence search and assessment.

Providers can be restricted to claim types (PubMed is only consulted for health claims).
Support is assessed by the LLM when available; otherwise by a closed-form score over the
top hits: title similarity to the claim, weighted by how recent the work is.
"""

import asyncio
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Sequence, Tuple

from truthcheck.constants.config import (
    CROSSREF_WORKS_URL,
    LLM_MAX_TOKENS_ASSESSMENT,
    NEUTRAL_SCORE,
    PUBMED_ESEARCH_URL,
    PUBMED_ESUMMARY_URL,
    SCHOLAR_CACHE_TTL_HOURS,
    SCHOLARLY_RECENCY_BASE_YEAR,
    SCHOLARLY_SIMILARITY_FLOOR,
    SCHOLARLY_TOP_RESULTS,
)
from truthcheck.constants.llm_prompts import EVIDENCE_ASSESSMENT_PROMPT
from truthcheck.core.logger import get_logger
from truthcheck.core.schemas import ArticleContext, NormalizedClaim, SourceScore
from truthcheck.services.common.cache import CacheStore, generate_key, hash_string
from truthcheck.services.common.http_client import JsonHttpClient
from truthcheck.services.common.text_cleaner import jaccard_similarity, remove_html_tags
from truthcheck.services.llms.parsing import unwrap_json
from truthcheck.services.sources.base import EvidenceSource, clamp_score, neutral_score

logger = get_logger(__name__)

_YEAR = re.compile(r"\b(1[89]\d{2}|20\d{2})\b")


@dataclass(frozen=True)
class ScholarlyHit:
    title: str
    url: Optional[str] = None
    year: Optional[int] = None
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ScholarlyProvider(Protocol):
    name: str
    # None means every claim type
    claim_types: Optional[FrozenSet[str]]

    async def search(self, query: str, limit: int) -> List[ScholarlyHit]: ...


# -------------------------------------------------------------------------
# Providers
# -------------------------------------------------------------------------


class CrossrefProvider:
    name = "crossref"
    claim_types = None

    def __init__(self, http: JsonHttpClient, mailto: Optional[str] = None) -> None:
        self.http = http
        self.mailto = mailto

    async def search(self, query: str, limit: int) -> List[ScholarlyHit]:
        params: Dict[str, Any] = {"query": query, "rows": limit, "select": "title,URL,issued"}
        if self.mailto:
            params["mailto"] = self.mailto
        data = await self.http.get_json(self.name, CROSSREF_WORKS_URL, params=params)

        hits: List[ScholarlyHit] = []
        for item in ((data or {}).get("message") or {}).get("items", []):
            titles = item.get("title") or []
            if not titles:
                continue
            year = None
            parts = ((item.get("issued") or {}).get("date-parts") or [[None]])[0]
            if parts and isinstance(parts[0], int):
                year = parts[0]
            hits.append(ScholarlyHit(title=remove_html_tags(titles[0]), url=item.get("URL"), year=year, source=self.name))
        return hits


class PubMedProvider:
    name = "pubmed"
    claim_types = frozenset({"health"})

    def __init__(self, http: JsonHttpClient, api_key: Optional[str] = None) -> None:
        self.http = http
        self.api_key = api_key

    def _params(self, **extra: Any) -> Dict[str, Any]:
        params: Dict[str, Any] = {"db": "pubmed", "retmode": "json", **extra}
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    async def search(self, query: str, limit: int) -> List[ScholarlyHit]:
        found = await self.http.get_json(self.name, PUBMED_ESEARCH_URL, params=self._params(term=query, retmax=limit))
        ids = ((found or {}).get("esearchresult") or {}).get("idlist") or []
        if not ids:
            return []

        summary = await self.http.get_json(self.name, PUBMED_ESUMMARY_URL, params=self._params(id=",".join(ids)))
        result = (summary or {}).get("result") or {}

        hits: List[ScholarlyHit] = []
        for uid in result.get("uids", ids):
            doc = result.get(uid) or {}
            title = doc.get("title")
            if not title:
                continue
            m = _YEAR.search(doc.get("pubdate") or "")
            hits.append(
                ScholarlyHit(
                    title=remove_html_tags(title),
                    url=f"https://pubmed.ncbi.nlm.nih.gov/{uid}/",
                    year=int(m.group(1)) if m else None,
                    source=self.name,
                )
            )
        return hits


# -------------------------------------------------------------------------
# Assessment
# -------------------------------------------------------------------------


def recency_weight(year: Optional[int]) -> float:
    if year is None:
        return 0.5
    return max(0.0, min(1.0, (year - SCHOLARLY_RECENCY_BASE_YEAR) / 20))


def fallback_assessment(claim_text: str, hits: Sequence[ScholarlyHit]) -> Tuple[float, str, int]:
    """
    Closed-form support estimate over the top hits.

    Returns:
        (score, confidence, number of hits similar enough to count)
    """
    total = 0.0
    valid = 0
    for hit in hits[:SCHOLARLY_TOP_RESULTS]:
        similarity = jaccard_similarity(claim_text, hit.title)
        if similarity > SCHOLARLY_SIMILARITY_FLOOR:
            total += similarity * 10 * recency_weight(hit.year)
            valid += 1

    score = total / valid if valid else float(NEUTRAL_SCORE)
    confidence = "high" if valid > 2 else "medium"
    return round(min(10.0, score), 2), confidence, valid


class ScholarlySource(EvidenceSource):
    name = "scholarly"

    def __init__(
        self,
        providers: Sequence[ScholarlyProvider],
        llm: Any = None,
        cache: Optional[CacheStore] = None,
        limit: int = SCHOLARLY_TOP_RESULTS,
    ) -> None:
        super().__init__(cache)
        self.providers = list(providers)
        self.llm = llm
        self.limit = limit

    def providers_for(self, claim_type: str) -> List[ScholarlyProvider]:
        return [p for p in self.providers if p.claim_types is None or claim_type in p.claim_types]

    async def _search(self, provider: ScholarlyProvider, claim: NormalizedClaim) -> List[ScholarlyHit]:
        key = generate_key("scholar", hash_string(claim.original_claim), provider.name)
        cached = await self._cache_get(key)
        if cached is not None:
            return [ScholarlyHit(**h) for h in cached]

        query = claim.normalized_claim or claim.original_claim
        hits = await provider.search(query, self.limit)
        await self._cache_set(key, [h.to_dict() for h in hits], SCHOLAR_CACHE_TTL_HOURS)
        return hits

    async def assess_with_llm(
        self, claim: NormalizedClaim, hits: Sequence[ScholarlyHit], llm: Any = None
    ) -> Optional[SourceScore]:
        llm = llm or self.llm
        evidence = "\n".join(
            f"- {h.title} ({h.year or 'n.d.'}, {h.source})" for h in hits[:SCHOLARLY_TOP_RESULTS]
        )
        try:
            response = await llm.ainvoke(
                EVIDENCE_ASSESSMENT_PROMPT.format(claim=claim.original_claim, evidence=evidence),
                response_format="json",
                max_tokens=LLM_MAX_TOKENS_ASSESSMENT,
                purpose="evidence_assessment",
            )
        except Exception as e:
            logger.warning(f"[Scholarly] LLM assessment failed, using similarity fallback: {e}")
            return None

        payload = unwrap_json(response, expect="object", fields=("overall_score", "confidence", "assessment"))
        if not isinstance(payload, dict):
            return None
        score = clamp_score(payload.get("overall_score"))
        if score is None:
            return None
        confidence = payload.get("confidence") if payload.get("confidence") in ("high", "medium", "low") else "medium"
        return SourceScore(
            score=score,
            confidence=confidence,
            explanation=str(payload.get("assessment") or f"Assessed {len(hits)} scholarly sources"),
            url=hits[0].url,
            details={"method": "llm", "hits": [h.to_dict() for h in hits], "findings": payload.get("findings") or []},
        )

    async def collect_hits(
        self, claim: NormalizedClaim, providers: Sequence[ScholarlyProvider]
    ) -> Tuple[List[ScholarlyHit], List[str]]:
        """Search the given providers concurrently; failures are returned as messages, not raised."""
        results = await asyncio.gather(*(self._search(p, claim) for p in providers), return_exceptions=True)

        hits: List[ScholarlyHit] = []
        errors: List[str] = []
        for provider, result in zip(providers, results):
            if isinstance(result, Exception):
                logger.warning(f"[Scholarly] {provider.name} search failed: {result}")
                errors.append(f"{provider.name}: {result}")
            else:
                hits.extend(result)
        return hits, errors

    async def query(self, claim: NormalizedClaim, context: ArticleContext) -> SourceScore:
        providers = self.providers_for(claim.claim_type)
        if not providers:
            return neutral_score(f"No scholarly sources for {claim.claim_type} claims")

        hits, errors = await self.collect_hits(claim, providers)
        if not hits:
            if len(errors) == len(providers):
                return SourceScore.failed("; ".join(errors), "Scholarly search unavailable")
            return neutral_score("No scholarly evidence found")

        if self.llm is not None:
            assessed = await self.assess_with_llm(claim, hits)
            if assessed is not None:
                return assessed

        score, confidence, valid = fallback_assessment(claim.original_claim, hits)
        return SourceScore(
            score=score,
            confidence=confidence,
            explanation=f"{valid} of {min(len(hits), SCHOLARLY_TOP_RESULTS)} top scholarly results closely match the claim",
            url=hits[0].url,
            details={"method": "similarity_recency", "hits": [h.to_dict() for h in hits]},
        )