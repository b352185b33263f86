"""
Injectable expiring cache.

Components that want caching receive an ExpiringCache instance in their
constructor; nothing in the pipeline reaches for a module-level cache.
"""

from typing import Any, Callable, Hashable, Optional
import time

from cachetools import TLRUCache

_MISSING = object()


def _expires_at(_key, entry, now):
    return now + entry[1]


class ExpiringCache:
    """
    Key/value cache with a TTL chosen per `set` call.

    Backed by cachetools.TLRUCache: each entry is stored together with its
    TTL and expires independently. Least recently used entries are evicted
    once `maxsize` is reached.
    """

    def __init__(
        self,
        maxsize: int = 1024,
        default_ttl: float = 300.0,
        timer: Callable[[], float] = time.monotonic
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._entries = TLRUCache(maxsize=maxsize, ttu=_expires_at, timer=timer)

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            return default
        return entry[0]

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            self._entries.pop(key, None)
            return
        self._entries[key] = (value, ttl)

    def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop one key, or everything when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)
