"""
Retry with exponential backoff for transient failures, plus a circuit breaker for
flaky external endpoints.

Transient: connection errors, timeouts, HTTP 5xx and 429. Everything else (other 4xx,
validation and parsing errors) fails immediately.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

import aiohttp

from truthcheck.core.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class TransientError(Exception):
    """A failure worth retrying."""


class PermanentError(Exception):
    """A failure that retrying cannot fix."""


class CircuitOpenError(Exception):
    pass


def _status_of(exc: BaseException) -> Optional[int]:
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, PermanentError):
        return False
    if isinstance(exc, (TransientError, asyncio.TimeoutError, TimeoutError, aiohttp.ClientConnectionError)):
        return True
    status = _status_of(exc)
    if status is not None:
        return status == 429 or status >= 500
    return False


def backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    return min(base_delay * (2**attempt), max_delay)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    label: str = "call",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Await fn(), retrying transient failures up to max_retries times.

    Args:
        fn: Zero-argument coroutine factory, called once per attempt
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry, doubled per attempt
        max_delay: Upper bound for any single delay
        label: Name used in log lines

    Returns:
        The first successful result. The last error is re-raised when retries run out.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as e:
            if not is_transient(e) or attempt >= max_retries:
                raise
            wait = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(f"[Retry] {label} failed ({e}). Retrying in {wait:.1f}s (attempt {attempt + 1}/{max_retries})")
            await sleep(wait)
            attempt += 1


class CircuitBreaker:
    """
    closed -> open after failure_threshold consecutive failures -> half-open once
    reset_timeout seconds have passed -> closed on the next success, open again on failure.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._failures = 0
        self._opened_at: float | None = None

    @property
    def state(self) -> str:
        if self._opened_at is None:
            return self.CLOSED
        if self._clock() - self._opened_at >= self.reset_timeout:
            return self.HALF_OPEN
        return self.OPEN

    @property
    def failures(self) -> int:
        return self._failures

    async def call(self, fn: Callable[[], Awaitable[T]]) -> T:
        state = self.state
        if state == self.OPEN:
            raise CircuitOpenError(f"circuit '{self.name}' is open")

        try:
            result = await fn()
        except Exception:
            self._on_failure(state)
            raise

        self._on_success(state)
        return result

    def _on_success(self, state: str) -> None:
        if state == self.HALF_OPEN:
            logger.info(f"[CircuitBreaker] {self.name} closed after successful trial call")
        self._failures = 0
        self._opened_at = None

    def _on_failure(self, state: str) -> None:
        self._failures += 1
        if state == self.HALF_OPEN or self._failures >= self.failure_threshold:
            if state != self.OPEN:
                logger.warning(f"[CircuitBreaker] {self.name} opened after {self._failures} consecutive failures")
            self._opened_at = self._clock()

    def reset(self) -> None:
        self._failures = 0
        self._opened_at = None
