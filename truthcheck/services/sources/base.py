from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from truthcheck.constants.config import NEUTRAL_SCORE
from truthcheck.core.schemas import ArticleContext, NormalizedClaim, SourceScore
from truthcheck.services.common.cache import CacheStore


def clamp_score(value: Any) -> Optional[float]:
    """Coerce a provider/LLM value onto the 0-10 scale; None when it is not a number."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if score != score:  # NaN
        return None
    return max(0.0, min(10.0, score))


def neutral_score(explanation: str, details: Optional[Dict[str, Any]] = None) -> SourceScore:
    return SourceScore(score=NEUTRAL_SCORE, confidence="low", explanation=explanation, details=details or {})


class EvidenceSource(ABC):
    """
    One independent signal provider.

    query() may raise; the aggregating scorer turns any exception or timeout into a
    failed SourceScore, so adapters only handle the failures they can recover from.
    """

    name: str = "source"

    def __init__(self, cache: Optional[CacheStore] = None) -> None:
        self.cache = cache

    @abstractmethod
    async def query(self, claim: NormalizedClaim, context: ArticleContext) -> SourceScore: ...

    async def _cache_get(self, key: str) -> Any:
        if self.cache is None:
            return None
        return await self.cache.get(key)

    async def _cache_set(self, key: str, value: Any, ttl_hours: float) -> None:
        if self.cache is not None:
            await self.cache.set(key, value, ttl_hours)
