from functools import lru_cache
from typing import ClassVar, Dict, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    GROQ_API_KEY: Optional[str] = Field(default=None)
    GOOGLE_FACTCHECK_API_KEY: Optional[str] = Field(default=None)
    NCBI_API_KEY: Optional[str] = Field(default=None)

    NEWSGUARD_API_URL: Optional[str] = Field(default=None, description="Domain rating backend base URL")
    NEWSGUARD_API_KEY: Optional[str] = Field(default=None)

    # LLM Configuration
    LLM_MODEL: str = Field(default="llama-3.3-70b-versatile", description="Groq model used for all prompts")
    LLM_TEMPERATURE: float = Field(default=0.1)
    LLM_MAX_RETRIES: int = Field(default=5, description="Retries on 429 rate limits")

    # Claim extraction
    EXTRACTION_METHOD: Literal["heuristic", "hybrid"] = Field(default="hybrid")
    SENSITIVITY: Literal["high", "balanced", "strict"] = Field(default="balanced")
    HEURISTIC_THRESHOLD: float = Field(
        default=0.6, description="Escalate to the LLM below this aggregate heuristic confidence"
    )
    MIN_CLAIM_LENGTH: int = Field(default=20)
    MAX_CLAIM_LENGTH: int = Field(default=400)
    LLM_EXCERPT_CHARS: int = Field(default=3000)

    # Normalization
    NORMALIZATION_CONFIDENCE_THRESHOLD: float = Field(default=0.7)

    # Scoring
    SCORING_PROFILE: Literal["four_source", "three_source"] = Field(default="four_source")
    FACT_CHECKER_ENABLED: bool = Field(default=True)
    SCHOLARLY_ENABLED: bool = Field(default=True)
    CREDIBILITY_ENABLED: bool = Field(default=True)
    COHERENCE_ENABLED: bool = Field(default=True)
    AI_ENABLED: bool = Field(default=True, description="LLM evidence assessment (three_source profile)")
    OVERRIDE_ENABLED: bool = Field(default=True)
    SOURCE_TIMEOUT_SECONDS: float = Field(default=8.0, description="Per-adapter call timeout")
    HTTP_TIMEOUT_SECONDS: float = Field(default=6.0)
    OVERRIDE_TIMEOUT_SECONDS: float = Field(default=10.0, description="Whole authoritative override check per claim")
    LLM_TIMEOUT_SECONDS: float = Field(default=15.0, description="Single LLM normalization call")

    # Retry / circuit breaker
    RETRY_MAX_RETRIES: int = Field(default=3)
    RETRY_BASE_DELAY: float = Field(default=1.0)
    RETRY_MAX_DELAY: float = Field(default=30.0)
    CIRCUIT_FAILURE_THRESHOLD: int = Field(default=5)
    CIRCUIT_RESET_TIMEOUT: float = Field(default=60.0)

    # Cache
    CACHE_ENABLED: bool = Field(default=True)
    CACHE_SWEEP_INTERVAL_SECONDS: float = Field(default=3600.0)

    # Document processing
    BATCH_SIZE: int = Field(default=5)
    BATCH_DELAY_SECONDS: float = Field(default=0.1)
    MIN_CONTENT_LENGTH: int = Field(default=300)

    # Display bands on the final 0-10 score
    HIGH_TRUST_THRESHOLD: int = Field(default=8)
    MEDIUM_TRUST_THRESHOLD: int = Field(default=5)

    LOG_LEVEL: str = Field(default="INFO")

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(env_file=".env", extra="ignore")

    def source_weights(self) -> Dict[str, float]:
        """Weights of the enabled evidence sources for the active scoring profile."""
        if self.SCORING_PROFILE == "three_source":
            weights = {"ai": 0.40, "source_credibility": 0.30, "scholarly": 0.30}
        else:
            weights = {"fact_checker": 0.35, "source_credibility": 0.20, "scholarly": 0.30, "coherence": 0.15}

        enabled = {
            "fact_checker": self.FACT_CHECKER_ENABLED,
            "source_credibility": self.CREDIBILITY_ENABLED,
            "scholarly": self.SCHOLARLY_ENABLED,
            "coherence": self.COHERENCE_ENABLED,
            "ai": self.AI_ENABLED,
        }
        return {name: w for name, w in weights.items() if enabled.get(name, False)}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
