"""
In-memory, TTL-governed cache for Sleeper API responses.

Entries are keyed by the request path plus its sorted query parameters and
expire lazily: an expired entry is purged by the read that finds it. There is
no background eviction.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from .cache_policy import get_policy
from .metrics import get_metrics_collector

logger = logging.getLogger(__name__)

# Returned by lookup() when nothing usable is cached
MISSING = object()


@dataclass
class CacheEntry:
    """A cached response; ``value``, ``written_at`` and ``ttl`` never change after write."""
    value: Any
    written_at: float
    ttl: float
    category: str
    hit_count: int = field(default=0)

    def is_expired(self, now: float) -> bool:
        return now - self.written_at > self.ttl


def make_cache_key(path: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Build the canonical cache key for a request.

    Parameter names are sorted so ``{a: 1, b: 2}`` and ``{b: 2, a: 1}`` yield
    the same key. ``None`` values are dropped, matching what is sent upstream.
    """
    pairs = sorted((str(k), v) for k, v in (params or {}).items() if v is not None)
    query = "&".join(f"{k}={v}" for k, v in pairs)
    return f"{path}?{query}" if query else path


class ResultCache:
    """Per-endpoint response cache with policy-assigned TTLs."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: Dict[str, CacheEntry] = {}
        self._clock = clock
        self._metrics = get_metrics_collector()

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None, default: Any = None) -> Any:
        """Return the cached value, or ``default`` when missing or expired."""
        key = make_cache_key(path, params)
        entry = self._entries.get(key)
        if entry is None:
            self._metrics.increment_counter("result_cache.miss")
            return default

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._metrics.increment_counter("result_cache.expired")
            logger.debug(f"Cache entry expired: {key}")
            return default

        entry.hit_count += 1
        self._metrics.increment_counter("result_cache.hit", category=entry.category)
        return entry.value

    def lookup(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Like ``get`` but returns the ``MISSING`` sentinel, so cached ``null`` bodies are distinguishable."""
        return self.get(path, params, default=MISSING)

    def set(self, path: str, params: Optional[Mapping[str, Any]], value: Any) -> None:
        """Store ``value`` under the canonical key with the TTL of the path's policy."""
        policy = get_policy(path)
        if not policy.cacheable:
            logger.debug(f"Path not cacheable in result cache: {path}")
            return

        key = make_cache_key(path, params)
        self._entries[key] = CacheEntry(
            value=value,
            written_at=self._clock(),
            ttl=policy.ttl,
            category=policy.category,
        )

    def get_entry(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Optional[CacheEntry]:
        """Inspect an entry without counting a hit or purging it."""
        return self._entries.get(make_cache_key(path, params))

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Entry counts per category against the advisory policy capacity."""
        now = self._clock()
        categories: Dict[str, Dict[str, Any]] = {}
        for key, entry in self._entries.items():
            cat = categories.setdefault(entry.category, {
                "entries": 0,
                "expired": 0,
                "hits": 0,
                "capacity": get_policy(key.split("?")[0]).capacity,
            })
            cat["entries"] += 1
            cat["hits"] += entry.hit_count
            if entry.is_expired(now):
                cat["expired"] += 1
        for cat in categories.values():
            cat["over_capacity"] = cat["entries"] > cat["capacity"]
        return {"entries": len(self._entries), "categories": categories}
