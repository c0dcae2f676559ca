"""
Weighted aggregation of evidence-source scores.

All enabled sources run concurrently, each under its own timeout. A source that raises or
times out is recorded with `error` set and no score; it never reaches the weighted mean
but still counts (as low confidence) toward the overall confidence band.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from truthcheck.constants.config import CONFIDENCE_VALUES, NEUTRAL_SCORE, SCORES_CACHE_TTL_HOURS
from truthcheck.core.logger import get_logger
from truthcheck.core.observability import stage_timer, truthcheck_source_calls_total
from truthcheck.core.schemas import AggregateScoreResult, ArticleContext, NormalizedClaim, SourceScore
from truthcheck.services.common.cache import CacheStore, generate_key, hash_string
from truthcheck.services.sources.base import EvidenceSource

logger = get_logger(__name__)


def weighted_final(components: Mapping[str, SourceScore], weights: Mapping[str, float]) -> int:
    """round(sum(score * w) / sum(w)) over sources with a numeric score; neutral when none."""
    total = 0.0
    weight_sum = 0.0
    for name, component in components.items():
        weight = weights.get(name, 0.0)
        if not component.available or weight <= 0:
            continue
        total += component.score * weight
        weight_sum += weight
    if weight_sum == 0:
        return NEUTRAL_SCORE
    return int(round(total / weight_sum))


def confidence_band(components: Mapping[str, SourceScore]) -> str:
    if not components:
        return "low"
    mean = sum(CONFIDENCE_VALUES.get(c.confidence, 0.5) for c in components.values()) / len(components)
    if mean >= 0.8:
        return "high"
    if mean >= 0.5:
        return "medium"
    return "low"


class AggregatingScorer:
    def __init__(
        self,
        sources: Sequence[EvidenceSource],
        weights: Mapping[str, float],
        cache: Optional[CacheStore] = None,
        timeout: float = 8.0,
        timeouts: Optional[Mapping[str, float]] = None,
    ) -> None:
        """
        Args:
            sources: Enabled evidence sources; a source without a weight is ignored
            weights: source name -> weight
            cache: Optional shared cache for final results
            timeout: Default per-source timeout in seconds
            timeouts: Per-source overrides of `timeout`
        """
        self.weights = dict(weights)
        self.sources = [s for s in sources if self.weights.get(s.name, 0) > 0]
        skipped = [s.name for s in sources if s not in self.sources]
        if skipped:
            logger.info(f"[AggregatingScorer] Sources without weight are disabled: {skipped}")
        self.cache = cache
        self.timeout = timeout
        self.timeouts = dict(timeouts or {})

    async def _run_source(self, source: EvidenceSource, claim: NormalizedClaim, context: ArticleContext) -> SourceScore:
        timeout = self.timeouts.get(source.name, self.timeout)
        try:
            with stage_timer(f"source_{source.name}"):
                result = await asyncio.wait_for(source.query(claim, context), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[AggregatingScorer] {source.name} timed out after {timeout:.1f}s")
            truthcheck_source_calls_total.labels(source=source.name, status="timeout").inc()
            return SourceScore.failed(f"timeout after {timeout:.1f}s")
        except Exception as e:
            logger.warning(f"[AggregatingScorer] {source.name} failed: {e}")
            truthcheck_source_calls_total.labels(source=source.name, status="error").inc()
            return SourceScore.failed(str(e) or type(e).__name__)

        truthcheck_source_calls_total.labels(source=source.name, status="error" if result.error else "ok").inc()
        return result

    async def score_claim(self, claim: NormalizedClaim, context: Optional[ArticleContext] = None) -> AggregateScoreResult:
        """
        Score one normalized claim against every enabled source.

        Returns:
            AggregateScoreResult; final is 5 and confidence "low" when no source produced a score
        """
        context = context or ArticleContext()
        key = generate_key("scores", hash_string(claim.original_claim), context.domain or "-")
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                return cached

        results = await asyncio.gather(*(self._run_source(s, claim, context) for s in self.sources))
        components: Dict[str, SourceScore] = {s.name: r for s, r in zip(self.sources, results)}

        result = AggregateScoreResult(
            components=components,
            final=weighted_final(components, self.weights),
            confidence=confidence_band(components),
            timestamp=datetime.now(timezone.utc),
        )
        logger.info(
            f"[AggregatingScorer] final={result.final} confidence={result.confidence} "
            f"available={sum(1 for c in components.values() if c.available)}/{len(components)}"
        )

        if self.cache is not None and any(c.available for c in components.values()):
            await self.cache.set(key, result, SCORES_CACHE_TTL_HOURS)
        return result

    async def score_claims_batch(
        self, claims: Sequence[NormalizedClaim], context: Optional[ArticleContext] = None
    ) -> List[Optional[AggregateScoreResult]]:
        """Score several claims concurrently; a claim that fails yields None in its slot."""
        results: List[Any] = await asyncio.gather(
            *(self.score_claim(c, context) for c in claims), return_exceptions=True
        )
        out: List[Optional[AggregateScoreResult]] = []
        for claim, result in zip(claims, results):
            if isinstance(result, Exception):
                logger.warning(f"[AggregatingScorer] Scoring failed for '{claim.original_claim[:60]}': {result}")
                out.append(None)
            else:
                out.append(result)
        return out
