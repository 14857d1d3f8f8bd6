"""
Public key cache.

Keeps the gateway's FHE public key per chain for a fixed five minutes so that
creating several instances for the same network does not refetch it.

The cache is shared process-wide through get_default_cache(); tests and
key-rotation flows tear it down with reset_default_cache() or clear().

Concurrent misses for the same chain are not coalesced: both callers fetch
and the last write wins.
"""

import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from .logging import get_logger

logger = get_logger(__name__)

PUBLIC_KEY_TTL_SECONDS = 300.0  # 5 minutes

KeyFetcher = Callable[[], Awaitable[str]]


@dataclass(frozen=True)
class CacheEntry:
    """Cached public key with its fetch time."""

    public_key: str
    fetched_at: float

    def is_live(self, now: float) -> bool:
        return now - self.fetched_at < PUBLIC_KEY_TTL_SECONDS


class PublicKeyCache:
    """
    Time-bounded mapping of chain ID to gateway public key.

    Args:
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[int, CacheEntry] = {}

    async def get(self, chain_id: int, fetch: KeyFetcher) -> str:
        """
        Return the live key for chain_id, fetching and storing it on a miss.

        Expired entries are never served. A failed fetch stores nothing and
        propagates the fetcher's exception.
        """
        entry = self._entries.get(chain_id)
        if entry is not None and entry.is_live(self._clock()):
            logger.debug("Public key cache hit", extra={"chain_id": chain_id})
            return entry.public_key

        logger.debug("Public key cache miss", extra={"chain_id": chain_id})
        public_key = await fetch()
        self._entries[chain_id] = CacheEntry(public_key=public_key, fetched_at=self._clock())
        return public_key

    def peek(self, chain_id: int) -> Optional[str]:
        """Return the live key for chain_id without fetching."""
        entry = self._entries.get(chain_id)
        if entry is None or not entry.is_live(self._clock()):
            return None
        return entry.public_key

    def clear(self, chain_id: Optional[int] = None) -> None:
        """Evict one chain's entry, or every entry when chain_id is None."""
        if chain_id is None:
            self._entries.clear()
        else:
            self._entries.pop(chain_id, None)

    def __contains__(self, chain_id: int) -> bool:
        return self.peek(chain_id) is not None

    def __len__(self) -> int:
        return len(self._entries)


_default_cache: Optional[PublicKeyCache] = None


def get_default_cache() -> PublicKeyCache:
    """Process-wide cache used by instances that are not given one."""
    global _default_cache
    if _default_cache is None:
        _default_cache = PublicKeyCache()
    return _default_cache


def reset_default_cache() -> None:
    """Drop the process-wide cache; the next get_default_cache() starts empty."""
    global _default_cache
    _default_cache = None
