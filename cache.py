# cache.py
"""
In-memory TTL cache shared by the fetcher (raw page bodies) and the
scraper operations (built API responses).

Entries expire a fixed time after insertion. Storage is a cachetools
``TLRUCache`` whose time-to-use comes from each entry, so ``set`` can give
one entry its own lifetime. Expired entries are treated as absent by ``get``
and are evicted periodically by a background sweeper task started from the
application lifespan.
"""
import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from cachetools import TLRUCache

from config import CACHE_CHECK_PERIOD, CACHE_TTL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float


def cache_key(operation: str, *params) -> str:
    """Build a deterministic cache key from an operation name and its parameters."""
    parts = [operation]
    for param in params:
        parts.append("" if param is None else str(param))
    return "_".join(parts)


def _entry_expiry(key: str, entry: CacheEntry, now: float) -> float:
    return entry.expires_at


class TTLCache:
    def __init__(
        self,
        default_ttl: float = CACHE_TTL,
        sweep_interval: float = CACHE_CHECK_PERIOD,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        # No capacity bound, only expiry removes entries
        self._store: TLRUCache = TLRUCache(maxsize=math.inf, ttu=_entry_expiry, timer=clock)
        self._sweeper: Optional[asyncio.Task] = None

    def get(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        return None if entry is None else entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        lifetime = self.default_ttl if ttl is None else ttl
        self._store[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + lifetime)

    def clear(self) -> int:
        removed = len(self._store)
        self._store.clear()
        logger.info(f"Cache cleared: {removed} entries removed")
        return removed

    def size(self) -> int:
        self._store.expire()
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def sweep(self) -> int:
        """Evict every expired entry and return how many were removed."""
        expired = self._store.expire()
        if expired:
            logger.debug(f"Cache sweep evicted {len(expired)} entries")
        return len(expired)

    async def _run_sweeper(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()

    def start_sweeper(self) -> asyncio.Task:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._run_sweeper())
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
