"""
In-memory TTL cache for fid -> verified ETH address lookups
"""

import time
from typing import Dict, Any, Optional, Tuple
from threading import Lock

# Returned by get() on a miss, so a cached "no address" (None) is distinguishable
MISSING = object()


class AddressCache:
    """Thread-safe TTL cache. Values may be None (fid has no verified address)."""

    def __init__(self, default_ttl: int = 300):  # 5 minutes default
        self.cache: Dict[str, Tuple[Optional[str], float]] = {}
        self.lock = Lock()
        self.default_ttl = default_ttl

    def get(self, key: str) -> Any:
        """Get cached address (possibly None) or MISSING"""
        with self.lock:
            hit = self.cache.get(key)
            if hit is None:
                return MISSING
            value, expiry = hit
            if time.monotonic() >= expiry:
                del self.cache[key]
                return MISSING
            return value

    def set(self, key: str, value: Optional[str], ttl: Optional[int] = None):
        """Cache value for ttl seconds, dropping any expired entries"""
        ttl = self.default_ttl if ttl is None else ttl
        now = time.monotonic()
        with self.lock:
            self._evict_expired(now)
            self.cache[key] = (value, now + ttl)

    def delete(self, key: str):
        with self.lock:
            self.cache.pop(key, None)

    def clear(self):
        with self.lock:
            self.cache.clear()

    def _evict_expired(self, now: float):
        expired_keys = [k for k, (_, expiry) in self.cache.items() if now >= expiry]
        for key in expired_keys:
            del self.cache[key]

    def __len__(self) -> int:
        with self.lock:
            return len(self.cache)
