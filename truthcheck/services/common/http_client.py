"""
JSON-over-HTTP helper used by the lookup providers.

Each request gets retry with backoff for transient failures, and each provider
gets its own circuit breaker so one failing endpoint cannot stall every claim.
"""

from typing import Any, Dict, Optional

import aiohttp

from truthcheck.core.logger import get_logger
from truthcheck.core.observability import truthcheck_external_calls_total
from truthcheck.services.common.retry import CircuitBreaker, PermanentError, with_retry

logger = get_logger(__name__)


class JsonHttpClient:
    def __init__(
        self,
        timeout: float = 6.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._breakers: Dict[str, CircuitBreaker] = {}

    @classmethod
    def from_settings(cls, settings: Any) -> "JsonHttpClient":
        return cls(
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            max_retries=settings.RETRY_MAX_RETRIES,
            base_delay=settings.RETRY_BASE_DELAY,
            max_delay=settings.RETRY_MAX_DELAY,
            failure_threshold=settings.CIRCUIT_FAILURE_THRESHOLD,
            reset_timeout=settings.CIRCUIT_RESET_TIMEOUT,
        )

    def breaker(self, provider: str) -> CircuitBreaker:
        if provider not in self._breakers:
            self._breakers[provider] = CircuitBreaker(provider, self.failure_threshold, self.reset_timeout)
        return self._breakers[provider]

    async def _get_once(
        self, url: str, params: Optional[Dict[str, Any]], headers: Optional[Dict[str, str]]
    ) -> Any:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, params=params, headers=headers) as resp:
                resp.raise_for_status()
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise PermanentError(f"invalid JSON from {url}: {e}") from e

    async def get_json(
        self,
        provider: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        GET a JSON document on behalf of `provider`.

        Raises the last error once retries are exhausted, or CircuitOpenError while the
        provider's circuit is open.
        """

        async def _attempt() -> Any:
            return await with_retry(
                lambda: self._get_once(url, params, headers),
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                max_delay=self.max_delay,
                label=provider,
            )

        try:
            data = await self.breaker(provider).call(_attempt)
        except Exception:
            truthcheck_external_calls_total.labels(provider=provider, status="error").inc()
            raise

        truthcheck_external_calls_total.labels(provider=provider, status="ok").inc()
        return data
