"""In-memory response caching with a fixed time-to-live.

:class:`ResponseCache` maps a cache key (the resolved URL, or
``(METHOD, url)`` when the client is configured to key by method) to a
:class:`~reqio.models.CacheEntry`.  Entries expire ``ttl`` seconds after
they were stored.  Expiry is checked on read: :meth:`ResponseCache.get`
evicts a stale entry in the same synchronous step in which it detects it,
so no caller can observe a half-evicted entry.

Payloads are deep-copied on the way in and on the way out.  Callers never
hold a reference to what the cache stores.

See Also:
    :class:`~reqio.models.ClientConfig` -- ``cache_enabled`` and
    ``cache_ttl`` control this cache.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Any, Callable, Hashable, Optional

from reqio.models import CacheEntry

logger = logging.getLogger(__name__)


class ResponseCache:
    """TTL cache for decoded response payloads.

    Args:
        ttl: Maximum age in seconds.  An entry whose age is ``>= ttl`` is
            treated as absent and evicted.
        clock: Monotonic time source, injectable for tests.
        enabled: When ``False``, :meth:`get` always misses and :meth:`set`
            does nothing.

    Example::

        cache = ResponseCache(ttl=300)
        cache.set("https://api.example.com/posts", [{"id": 1}])
        hit = cache.get("https://api.example.com/posts")
    """

    def __init__(
        self,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
        enabled: bool = True,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._enabled = enabled
        self._entries: dict[Hashable, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        # Membership does not evict; use get() for a TTL-aware lookup.
        return key in self._entries

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: Hashable) -> Optional[Any]:
        """Return a copy of the cached payload, or ``None`` on a miss.

        A stale entry is deleted before ``None`` is returned.
        """
        _, payload = self.lookup(key)
        return payload

    def lookup(self, key: Hashable) -> tuple[bool, Any]:
        """Like :meth:`get` but distinguishes a cached ``None`` from a miss.

        Returns:
            ``(hit, payload)``.
        """
        if not self._enabled:
            return False, None
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        if entry.age(self._clock()) >= self._ttl:
            del self._entries[key]
            logger.debug("Cache entry expired: %s", key)
            return False, None
        return True, copy.deepcopy(entry.payload)

    def set(self, key: Hashable, payload: Any) -> None:
        """Store *payload* under *key*, stamped with the current clock reading."""
        if not self._enabled:
            return
        self._entries[key] = CacheEntry(
            payload=copy.deepcopy(payload), stored_at=self._clock()
        )

    def delete(self, key: Hashable) -> bool:
        """Remove *key* regardless of staleness.  Returns whether it existed."""
        return self._entries.pop(key, None) is not None

    def delete_where(self, predicate: Callable[[Hashable], bool]) -> int:
        """Remove every entry whose key satisfies *predicate*."""
        doomed = [key for key in self._entries if predicate(key)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """Return ``enabled``, ``size`` and ``ttl_seconds``."""
        return {
            "enabled": self._enabled,
            "size": len(self._entries),
            "ttl_seconds": self._ttl,
        }
