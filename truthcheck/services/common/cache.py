"""
In-memory TTL cache shared by the pipeline stages.

Keys are built as "{type}:{part}:{part}..." and claim-derived parts use hash_string,
a 32-bit polynomial rolling hash rendered in base 36. All mutations go through one
asyncio.Lock so concurrent batches can read and write safely; last writer wins.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from truthcheck.core.logger import get_logger
from truthcheck.core.observability import truthcheck_cache_requests_total

logger = get_logger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_BASE36[r])
    return "".join(reversed(digits))


def hash_string(text: str) -> str:
    """
    Stable, order- and case-sensitive hash of a string (h = h*31 + code, 32-bit signed).

    Not cryptographic; only used to build cache keys.
    """
    if not text:
        return "0"
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return _to_base36(abs(h))


def generate_key(key_type: str, *parts: Any) -> str:
    return f"{key_type}:{':'.join(str(p) for p in parts)}"


@dataclass
class CacheEntry:
    value: Any
    expires_at: float
    created_at: float


class CacheStore:
    """
    Key -> value store with a per-entry TTL in hours.

    Expired entries are dropped lazily on get() and in bulk by sweep(); start_sweeper()
    runs sweep() periodically on the running event loop.
    """

    def __init__(self, default_ttl_hours: float = 24, clock: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl_hours = default_ttl_hours
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._sweeper: Optional[asyncio.Task] = None

    # ---------------------------------------------------------------------
    # Basic operations
    # ---------------------------------------------------------------------

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at <= self._clock():
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
                truthcheck_cache_requests_total.labels(result="miss").inc()
                return None

            self._hits += 1
            truthcheck_cache_requests_total.labels(result="hit").inc()
            return entry.value

    async def set(self, key: str, value: Any, ttl_hours: Optional[float] = None) -> None:
        ttl = self.default_ttl_hours if ttl_hours is None else ttl_hours
        now = self._clock()
        async with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=now + ttl * 3600.0, created_at=now)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    async def sweep(self) -> int:
        """Remove every expired entry. Returns how many were removed."""
        now = self._clock()
        async with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for k in expired:
                del self._entries[k]
        if expired:
            logger.debug(f"[CacheStore] Swept {len(expired)} expired entries")
        return len(expired)

    def size(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 3) if total else 0.0,
        }

    # ---------------------------------------------------------------------
    # Periodic expiry
    # ---------------------------------------------------------------------

    def start_sweeper(self, interval_seconds: float = 3600.0) -> asyncio.Task:
        if self._sweeper is not None and not self._sweeper.done():
            return self._sweeper
        self._sweeper = asyncio.create_task(self._sweep_forever(interval_seconds))
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                logger.warning(f"[CacheStore] Sweep failed: {e}")
