from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ConfidenceBand = Literal["high", "medium", "low"]
ClaimType = Literal["health", "political", "scientific", "environmental", "economic", "other"]
EntityType = Literal["number", "quote", "proper_noun", "scientific_term"]
Relationship = Literal["supports", "contradicts", "tangential"]

CLAIM_TYPES = ("health", "political", "scientific", "environmental", "economic", "other")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ArticleContext(_Frozen):
    """What the host knows about the page a claim came from."""

    document_text: str = ""
    domain: Optional[str] = None


class ClaimCandidate(_Frozen):
    text: str
    confidence: float = Field(ge=0.0, le=1.0)
    method: Literal["heuristic", "external"] = "heuristic"
    position: int = -1
    claim_type: Optional[str] = None


class Entity(_Frozen):
    type: EntityType
    value: str
    unit: Optional[str] = None


class NormalizedClaim(_Frozen):
    original_claim: str
    normalized_claim: str
    entities: List[Entity] = Field(default_factory=list)
    search_queries: List[str] = Field(default_factory=list, max_length=3)
    claim_type: ClaimType = "other"
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    external: bool = False


class SourceScore(_Frozen):
    # None means the source could not produce a score
    score: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    confidence: ConfidenceBand = "low"
    explanation: str = ""
    url: Optional[str] = None
    error: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def available(self) -> bool:
        return self.score is not None and self.error is None

    @classmethod
    def failed(cls, error: str, explanation: str = "Source unavailable") -> "SourceScore":
        return cls(score=None, confidence="low", explanation=explanation, error=error)


class AggregateScoreResult(_Frozen):
    components: Dict[str, SourceScore] = Field(default_factory=dict)
    final: int = Field(default=5, ge=0, le=10)
    confidence: ConfidenceBand = "low"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class OverrideResult(_Frozen):
    source: str
    url: str
    relationship: Relationship
    confidence: float = Field(ge=0.0, le=1.0)
    explanation: str = ""
    score: int = Field(ge=0, le=10)


class ClaimAnalysis(_Frozen):
    claim: ClaimCandidate
    normalized: NormalizedClaim
    scores: AggregateScoreResult
    override: Optional[OverrideResult] = None
    final_score: int
    trust_level: ConfidenceBand
