from typing import Optional, Protocol

from truthcheck.core.config import Settings
from truthcheck.core.logger import get_logger
from truthcheck.services.llms.groq_service import GroqService
from truthcheck.services.llms.parsing import LLMResponse

logger = get_logger(__name__)


class LLMClient(Protocol):
    async def ainvoke(
        self,
        prompt: str,
        response_format: str = "text",
        max_tokens: Optional[int] = None,
        purpose: str = "general",
    ) -> LLMResponse: ...


def build_llm_service(settings: Settings) -> Optional[LLMClient]:
    """
    Build the LLM client for the configured provider.

    Returns None when no API key is configured; every consumer treats None as
    "LLM unavailable" and stays on its heuristic path.
    """
    if not settings.GROQ_API_KEY:
        logger.info("[LLMFactory] GROQ_API_KEY not set, running heuristics only")
        return None

    logger.info(f"[LLMFactory] Using Groq model {settings.LLM_MODEL}")
    return GroqService(
        api_key=settings.GROQ_API_KEY,
        model=settings.LLM_MODEL,
        temperature=settings.LLM_TEMPERATURE,
        max_retries=settings.LLM_MAX_RETRIES,
    )
