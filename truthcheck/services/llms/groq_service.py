import asyncio
import json
import re
from typing import Any, Dict, Optional

from groq import AsyncGroq

from truthcheck.core.logger import get_logger
from truthcheck.core.observability import truthcheck_llm_calls_total
from truthcheck.services.llms.parsing import LLMResponse

logger = get_logger(__name__)


class GroqService:
    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float = 0.1,
        max_retries: int = 5,
    ) -> None:
        if not api_key:
            raise RuntimeError("Missing GROQ_API_KEY")

        self.client = AsyncGroq(api_key=api_key)
        self.model = model
        self.temperature = temperature

        # Rate limit retry configuration
        self.max_retries = max_retries
        self.base_backoff = 1.0
        self.max_backoff = 60.0

    def _extract_retry_after(self, error_msg: str) -> float | None:
        """Extract retry-after time from error message if available."""
        match = re.search(r"Please try again in ([0-9.]+)s", error_msg)
        if match:
            return float(match.group(1))
        return None

    @staticmethod
    def _is_rate_limited(error: Exception) -> bool:
        return getattr(error, "status_code", None) == 429 or "429" in str(error)

    async def ainvoke(
        self,
        prompt: str,
        response_format: str = "text",
        max_tokens: Optional[int] = None,
        purpose: str = "general",
    ) -> LLMResponse:
        """
        Calls Groq async chat completion endpoint with exponential backoff on rate limits.

        In JSON mode the content is decoded when it is valid JSON; otherwise only the raw
        text is returned and callers recover what they can through unwrap_json().
        """
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        if response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        retry_count = 0
        while True:
            try:
                response = await self.client.chat.completions.create(**kwargs)
                break
            except Exception as e:
                if not self._is_rate_limited(e) or retry_count >= self.max_retries:
                    truthcheck_llm_calls_total.labels(purpose=purpose, status="error").inc()
                    logger.error(f"[GroqService] Groq call failed ({purpose}): {e}")
                    raise

                retry_after = self._extract_retry_after(str(e))
                if retry_after:
                    wait_time = min(retry_after, self.max_backoff)
                else:
                    wait_time = min(self.base_backoff * (2**retry_count), self.max_backoff)
                logger.warning(
                    f"[GroqService] Rate limit hit. Retrying in {wait_time:.1f}s "
                    f"(attempt {retry_count + 1}/{self.max_retries})"
                )
                await asyncio.sleep(wait_time)
                retry_count += 1

        truthcheck_llm_calls_total.labels(purpose=purpose, status="ok").inc()
        content = response.choices[0].message.content or ""

        if response_format == "json":
            try:
                return LLMResponse(text=content, data=json.loads(content))
            except ValueError:
                logger.warning(f"[GroqService] Non-JSON content in JSON mode ({purpose}), {len(content)} chars")
        return LLMResponse(text=content)
