"""
Document-level trust pipeline.

Extracted claims are processed in fixed-size batches. Inside a batch every claim runs
normalize -> {aggregate scoring, override check} concurrently, and the batch settles
completely before the next one starts. A set cancel event stops new batches from being
scheduled; the batch in flight drains.
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional

from truthcheck.core.config import Settings, get_settings
from truthcheck.core.logger import get_logger
from truthcheck.core.observability import (
    stage_timer,
    truthcheck_claims_failed_total,
    truthcheck_claims_scored_total,
    truthcheck_documents_analyzed_total,
)
from truthcheck.core.schemas import ArticleContext, ClaimAnalysis, ClaimCandidate, OverrideResult
from truthcheck.services.common.cache import CacheStore
from truthcheck.services.common.http_client import JsonHttpClient
from truthcheck.services.common.list_ops import chunk_list
from truthcheck.services.extraction.claim_extractor import ClaimExtractor
from truthcheck.services.llms.factory import build_llm_service
from truthcheck.services.normalization.normalizer import ClaimNormalizer
from truthcheck.services.scoring.aggregator import AggregatingScorer
from truthcheck.services.scoring.override import OverrideEvaluator, WikipediaSearchProvider
from truthcheck.services.sources.ai_assessment import AIAssessmentSource
from truthcheck.services.sources.base import EvidenceSource
from truthcheck.services.sources.coherence import CoherenceSource
from truthcheck.services.sources.credibility import CredibilitySource, NewsGuardProvider, RatingTableProvider
from truthcheck.services.sources.fact_checker import FactCheckerSource, GoogleFactCheckProvider
from truthcheck.services.sources.scholarly import CrossrefProvider, PubMedProvider, ScholarlySource

logger = get_logger(__name__)


def trust_level(score: int, high: int = 8, medium: int = 5) -> str:
    if score >= high:
        return "high"
    if score >= medium:
        return "medium"
    return "low"


class TrustPipeline:
    def __init__(
        self,
        extractor: ClaimExtractor,
        normalizer: ClaimNormalizer,
        scorer: AggregatingScorer,
        override_evaluator: Optional[OverrideEvaluator] = None,
        batch_size: int = 5,
        batch_delay: float = 0.1,
        min_content_length: int = 300,
        high_trust: int = 8,
        medium_trust: int = 5,
        cache: Optional[CacheStore] = None,
        cache_sweep_interval: float = 3600.0,
        override_timeout: Optional[float] = 10.0,
    ) -> None:
        self.extractor = extractor
        self.normalizer = normalizer
        self.scorer = scorer
        self.override_evaluator = override_evaluator
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.min_content_length = min_content_length
        self.high_trust = high_trust
        self.medium_trust = medium_trust
        self.cache = cache
        self.cache_sweep_interval = cache_sweep_interval
        self.override_timeout = override_timeout

    async def start(self) -> None:
        """Start background cache expiry on the running loop."""
        if self.cache is not None:
            self.cache.start_sweeper(self.cache_sweep_interval)

    async def aclose(self) -> None:
        if self.cache is not None:
            await self.cache.stop_sweeper()

    async def _check_override(self, normalized: Any) -> Optional[OverrideResult]:
        if self.override_evaluator is None:
            return None
        try:
            return await asyncio.wait_for(
                self.override_evaluator.check_override(normalized), timeout=self.override_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"[TrustPipeline] Override check timed out after {self.override_timeout}s, keeping aggregate score")
            return None
        except Exception as e:
            logger.warning(f"[TrustPipeline] Override check failed, keeping aggregate score: {e}")
            return None

    async def analyze_claim(self, claim: ClaimCandidate, context: ArticleContext) -> ClaimAnalysis:
        """Extracted -> Normalized -> {Scoring, OverrideCheck} -> Finalized for one claim."""
        normalized = await self.normalizer.normalize(claim.text)
        scores, override = await asyncio.gather(
            self.scorer.score_claim(normalized, context),
            self._check_override(normalized),
        )
        final_score = override.score if override is not None else scores.final
        return ClaimAnalysis(
            claim=claim,
            normalized=normalized,
            scores=scores,
            override=override,
            final_score=final_score,
            trust_level=trust_level(final_score, self.high_trust, self.medium_trust),
        )

    async def analyze_claims(
        self,
        claims: List[ClaimCandidate],
        context: ArticleContext,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[ClaimAnalysis]:
        analyses: List[ClaimAnalysis] = []
        batches = chunk_list(claims, self.batch_size)

        for index, batch in enumerate(batches):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"[TrustPipeline] Cancelled before batch {index + 1}/{len(batches)}")
                break

            with stage_timer("claim_batch"):
                results = await asyncio.gather(
                    *(self.analyze_claim(c, context) for c in batch), return_exceptions=True
                )

            for claim, result in zip(batch, results):
                if isinstance(result, Exception):
                    truthcheck_claims_failed_total.inc()
                    logger.warning(f"[TrustPipeline] Claim failed and was skipped '{claim.text[:60]}': {result}")
                    continue
                truthcheck_claims_scored_total.inc()
                analyses.append(result)

            if self.batch_delay > 0 and index < len(batches) - 1:
                await asyncio.sleep(self.batch_delay)

        return analyses

    async def analyze_document(
        self,
        text: str,
        domain: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[ClaimAnalysis]:
        """
        Extract, normalize and score every claim in an article.

        Args:
            text: Article body text
            domain: Domain the article is hosted on, for credibility scoring
            cancel_event: When set, no further batches are started

        Returns:
            One ClaimAnalysis per successfully processed claim, in ranking order.
            Empty for non-string or too-short input.
        """
        if not isinstance(text, str) or len(text.strip()) < self.min_content_length:
            logger.info("[TrustPipeline] Content too short for analysis")
            return []

        truthcheck_documents_analyzed_total.inc()
        claims = await self.extractor.extract(text)
        if not claims:
            logger.info("[TrustPipeline] No claims found")
            return []

        logger.info(f"[TrustPipeline] Processing {len(claims)} claims in batches of {self.batch_size}")
        context = ArticleContext(document_text=text, domain=domain)
        return await self.analyze_claims(claims, context, cancel_event)


def build_sources(settings: Settings, llm: Any, cache: Optional[CacheStore], http: JsonHttpClient) -> List[EvidenceSource]:
    fact_providers = []
    if settings.GOOGLE_FACTCHECK_API_KEY:
        fact_providers.append(GoogleFactCheckProvider(settings.GOOGLE_FACTCHECK_API_KEY, http))

    scholar_providers = [CrossrefProvider(http), PubMedProvider(http, api_key=settings.NCBI_API_KEY)]

    credibility_providers: List[Any] = [RatingTableProvider()]
    if settings.NEWSGUARD_API_URL:
        credibility_providers.append(NewsGuardProvider(settings.NEWSGUARD_API_URL, http, settings.NEWSGUARD_API_KEY))

    # The three-source profile scores scholarly hits by similarity and leaves the LLM judgement to "ai"
    weights = settings.source_weights()
    ai_assessed = "ai" in weights
    scholarly = ScholarlySource(scholar_providers, llm=None if ai_assessed else llm, cache=cache)

    sources: List[EvidenceSource] = [
        FactCheckerSource(fact_providers, cache=cache),
        scholarly,
        CredibilitySource(credibility_providers, cache=cache),
        CoherenceSource(llm=llm, cache=cache),
    ]
    if ai_assessed:
        sources.append(AIAssessmentSource(scholarly, llm=llm, cache=cache))
    return sources


def build_pipeline(settings: Optional[Settings] = None, cache: Optional[CacheStore] = None, llm: Any = None) -> TrustPipeline:
    """
    Wire the pipeline from settings.

    The host owns the returned objects; nothing here is stored at module level.
    """
    settings = settings or get_settings()
    if cache is None and settings.CACHE_ENABLED:
        cache = CacheStore()
    if llm is None:
        llm = build_llm_service(settings)
    http = JsonHttpClient.from_settings(settings)

    extractor = ClaimExtractor.from_settings(settings, llm=llm, cache=cache)
    normalizer = ClaimNormalizer(
        llm=llm,
        cache=cache,
        confidence_threshold=settings.NORMALIZATION_CONFIDENCE_THRESHOLD,
        llm_timeout=settings.LLM_TIMEOUT_SECONDS,
    )
    scorer = AggregatingScorer(
        build_sources(settings, llm, cache, http),
        weights=settings.source_weights(),
        cache=cache,
        timeout=settings.SOURCE_TIMEOUT_SECONDS,
    )
    override = OverrideEvaluator([WikipediaSearchProvider(http)], llm=llm, cache=cache) if settings.OVERRIDE_ENABLED else None

    return TrustPipeline(
        extractor,
        normalizer,
        scorer,
        override,
        batch_size=settings.BATCH_SIZE,
        batch_delay=settings.BATCH_DELAY_SECONDS,
        min_content_length=settings.MIN_CONTENT_LENGTH,
        high_trust=settings.HIGH_TRUST_THRESHOLD,
        medium_trust=settings.MEDIUM_TRUST_THRESHOLD,
        cache=cache,
        cache_sweep_interval=settings.CACHE_SWEEP_INTERVAL_SECONDS,
        override_timeout=settings.OVERRIDE_TIMEOUT_SECONDS,
    )
