"""Internal TTL cache for GET responses."""

from __future__ import annotations

import copy
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class CacheEntry:
    """A cached response body and the clock reading when it was stored."""

    key: str
    data: Any
    timestamp: float


def invalidation_prefix(endpoint: str) -> str:
    """Return the resource prefix a mutation on *endpoint* invalidates.

    The first two ``/``-separated segments of the path; the query string is
    ignored. ``/jobs/42/assign`` -> ``/jobs``.
    """
    path = endpoint.split("?", 1)[0]
    return "/".join(path.split("/")[:2])


class ResponseCache:
    """Endpoint-keyed response cache with time-based freshness.

    Entries are never evicted in the background; a stale entry is dropped
    the next time it is read. Returned data is deep-copied so callers cannot
    mutate cached bodies in place.
    """

    def __init__(self, ttl: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get_fresh(self, key: str) -> tuple[bool, Any]:
        """Return ``(hit, data)``; ``hit`` is ``False`` when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        if self._clock() - entry.timestamp >= self._ttl:
            del self._entries[key]
            return False, None
        return True, copy.deepcopy(entry.data)

    def store(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(key=key, data=copy.deepcopy(data), timestamp=self._clock())

    def invalidate_prefix(self, prefix: str) -> list[str]:
        """Evict every entry whose key starts with *prefix*; return the evicted keys."""
        evicted = [key for key in self._entries if key.startswith(prefix)]
        for key in evicted:
            del self._entries[key]
        return evicted

    def clear(self) -> None:
        self._entries.clear()
