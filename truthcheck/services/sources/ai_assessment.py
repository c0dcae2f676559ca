"""
LLM assessment of the scholarly evidence found for a claim.

Used by the three-source profile, where the scholarly component itself is scored by
title similarity only and this source carries the model's judgement of the same hits.
"""

from typing import Any, Optional

from truthcheck.core.logger import get_logger
from truthcheck.core.schemas import ArticleContext, NormalizedClaim, SourceScore
from truthcheck.services.common.cache import CacheStore
from truthcheck.services.sources.base import EvidenceSource, neutral_score
from truthcheck.services.sources.scholarly import ScholarlySource

logger = get_logger(__name__)


class AIAssessmentSource(EvidenceSource):
    name = "ai"

    def __init__(self, scholarly: ScholarlySource, llm: Any = None, cache: Optional[CacheStore] = None) -> None:
        super().__init__(cache)
        self.scholarly = scholarly
        self.llm = llm

    async def query(self, claim: NormalizedClaim, context: ArticleContext) -> SourceScore:
        if self.llm is None:
            return neutral_score("No LLM configured for evidence assessment")

        providers = self.scholarly.providers_for(claim.claim_type)
        if not providers:
            return neutral_score(f"No scholarly sources for {claim.claim_type} claims")

        hits, errors = await self.scholarly.collect_hits(claim, providers)
        if not hits:
            if len(errors) == len(providers):
                return SourceScore.failed("; ".join(errors), "Evidence search unavailable")
            return neutral_score("No evidence found to assess")

        assessed = await self.scholarly.assess_with_llm(claim, hits, llm=self.llm)
        if assessed is None:
            logger.info("[AIAssessment] No usable assessment from the LLM")
            return neutral_score(f"LLM could not assess {len(hits)} evidence items")
        return assessed
