import logging
import time
from collections import OrderedDict
from typing import Optional, Tuple

logger = logging.getLogger("campus-api.cache")


class ResponseCache:
    """
    Bounded key -> text store with a per-entry expiry.

    Eviction follows insertion order: reads never refresh an entry, only a
    repeated put() moves the key to the newest position. Expired entries are
    dropped on every get() and put().
    """

    def __init__(self, capacity: int = 120, ttl_seconds: float = 900):
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._entries: "OrderedDict[str, Tuple[str, float]]" = OrderedDict()

    def get(self, key: str) -> Optional[str]:
        self._evict_expired()
        entry = self._entries.get(key)
        return entry[0] if entry else None

    def put(self, key: str, text: str) -> None:
        if not key or not text:
            return
        self._evict_expired()
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = (text, time.monotonic() + self.ttl_seconds)
        if len(self._entries) > self.capacity:
            oldest, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cache entry {oldest[:60]!r}")

    def clear(self) -> None:
        self._entries.clear()

    def _evict_expired(self) -> None:
        now = time.monotonic()
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(f"Dropped {len(expired)} expired cache entries")

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
