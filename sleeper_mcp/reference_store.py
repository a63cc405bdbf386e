"""
Persistence and caching for the full Sleeper player directory.

The directory (``/players/<sport>``) is several megabytes and changes slowly,
so it is cached as one blob per sport with its own freshness window instead
of going through the per-request result cache. Two interchangeable backends
exist:

- ``FileReferenceStore``: one JSON file per sport, fresh for 24 hours.
- ``RedisReferenceStore``: one Redis key per sport written with ``SETEX``,
  fresh for 4 hours.

``ReferenceCache`` sits in front of either backend, keeps the last loaded
directory in memory and performs the full-directory refill on a miss.
"""

import asyncio
import json
import logging
import os
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from .errors import ReferenceUnavailable, UpstreamError
from .metrics import get_metrics_collector

logger = logging.getLogger(__name__)

HOUR = 3600
FILE_FRESHNESS_SECONDS = 24 * HOUR
REDIS_FRESHNESS_SECONDS = 4 * HOUR

Directory = Dict[str, Dict[str, Any]]


@dataclass
class StoredDirectory:
    """A persisted directory blob and the epoch second it was fetched."""
    domain: str
    data: Directory
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at

    def is_fresh(self, now: float, freshness_seconds: float) -> bool:
        return self.age(now) <= freshness_seconds


class ReferenceStore(ABC):
    """Backing store interface: whole-blob load/save by domain key."""

    freshness_seconds: float = FILE_FRESHNESS_SECONDS

    @abstractmethod
    async def read(self, domain: str) -> Optional[StoredDirectory]:
        """Return the stored blob regardless of age, or None."""

    @abstractmethod
    async def save(self, domain: str, directory: Directory, fetched_at: Optional[float] = None) -> None:
        """Replace the stored blob for ``domain`` with ``directory``."""

    async def load(self, domain: str, now: Optional[float] = None) -> Optional[StoredDirectory]:
        """Return the stored blob if it is within the freshness window."""
        stored = await self.read(domain)
        if stored is None:
            return None
        now = time.time() if now is None else now
        if not stored.is_fresh(now, self.freshness_seconds):
            logger.info(
                f"Stored player directory for {domain} is stale "
                f"(age={stored.age(now) / HOUR:.1f}h, window={self.freshness_seconds / HOUR:.1f}h)"
            )
            return None
        return stored


def _envelope(domain: str, directory: Directory, fetched_at: float) -> Dict[str, Any]:
    return {
        "data": directory,
        "timestamp": int(fetched_at * 1000),  # epoch milliseconds
        "domainKey": domain,
        "playerCount": len(directory),
    }


def _from_envelope(domain: str, payload: Any) -> Optional[StoredDirectory]:
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        return None
    timestamp = payload.get("timestamp")
    if not isinstance(timestamp, (int, float)):
        return None
    return StoredDirectory(domain=domain, data=payload["data"], fetched_at=timestamp / 1000.0)


class FileReferenceStore(ReferenceStore):
    """One ``players-<domain>.json`` file per sport under ``cache_dir``."""

    def __init__(self, cache_dir: str = ".cache", freshness_seconds: float = FILE_FRESHNESS_SECONDS):
        self.cache_dir = Path(cache_dir)
        self.freshness_seconds = freshness_seconds

    def path_for(self, domain: str) -> Path:
        return self.cache_dir / f"players-{domain}.json"

    async def read(self, domain: str) -> Optional[StoredDirectory]:
        return await asyncio.to_thread(self._read_sync, domain)

    async def save(self, domain: str, directory: Directory, fetched_at: Optional[float] = None) -> None:
        fetched_at = time.time() if fetched_at is None else fetched_at
        await asyncio.to_thread(self._write_sync, domain, _envelope(domain, directory, fetched_at))

    def _read_sync(self, domain: str) -> Optional[StoredDirectory]:
        path = self.path_for(domain)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read player directory file {path}: {e}")
            return None
        stored = _from_envelope(domain, payload)
        if stored is None:
            logger.warning(f"Ignoring malformed player directory file {path}")
        return stored

    def _write_sync(self, domain: str, payload: Dict[str, Any]) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        target = self.path_for(domain)
        # Write to a sibling temp file and rename so readers never see a partial blob
        fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, prefix=f".players-{domain}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f)
            os.replace(tmp_path, target)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info(f"Saved player directory for {domain} to {target} ({payload['playerCount']} players)")


class RedisReferenceStore(ReferenceStore):
    """Redis-backed store; the key expires on its own after the freshness window."""

    def __init__(self, client, freshness_seconds: float = REDIS_FRESHNESS_SECONDS, key_prefix: str = "players"):
        """
        Args:
            client: a ``redis.asyncio.Redis`` instance (or compatible)
            freshness_seconds: used as the ``SETEX`` expiry and checked on read
            key_prefix: first segment of ``<prefix>:<domain>:full``
        """
        self.client = client
        self.freshness_seconds = freshness_seconds
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, freshness_seconds: float = REDIS_FRESHNESS_SECONDS) -> "RedisReferenceStore":
        import redis.asyncio as redis

        return cls(redis.from_url(url, decode_responses=True), freshness_seconds=freshness_seconds)

    def key_for(self, domain: str) -> str:
        return f"{self.key_prefix}:{domain}:full"

    async def read(self, domain: str) -> Optional[StoredDirectory]:
        cached = await self.client.get(self.key_for(domain))
        if not cached:
            return None
        try:
            payload = json.loads(cached) if isinstance(cached, (str, bytes, bytearray)) else cached
        except ValueError as e:
            logger.warning(f"Ignoring undecodable player directory in Redis for {domain}: {e}")
            return None
        stored = _from_envelope(domain, payload)
        if stored is None:
            logger.warning(f"Ignoring malformed player directory in Redis for {domain}")
        return stored

    async def save(self, domain: str, directory: Directory, fetched_at: Optional[float] = None) -> None:
        fetched_at = time.time() if fetched_at is None else fetched_at
        payload = json.dumps(_envelope(domain, directory, fetched_at))
        await self.client.setex(self.key_for(domain), int(self.freshness_seconds), payload)
        logger.info(f"Saved player directory for {domain} to Redis ({len(directory)} players)")


def create_reference_store(reference_config) -> ReferenceStore:
    """Build the backing store named by ``ReferenceConfig.backend``."""
    backend = (reference_config.backend or "file").lower()
    if backend == "file":
        return FileReferenceStore(
            reference_config.cache_dir,
            freshness_seconds=reference_config.file_freshness_hours * HOUR,
        )
    if backend == "redis":
        return RedisReferenceStore.from_url(
            reference_config.redis_url,
            freshness_seconds=reference_config.redis_freshness_hours * HOUR,
        )
    raise ValueError(f"Unknown reference store backend: {reference_config.backend}")


class ReferenceCache:
    """
    Whole-directory cache in front of a ``ReferenceStore``.

    The most recently loaded directory per domain is kept in memory under the
    store's freshness window, so the blob is parsed once per window instead of
    once per call. Refills are always full-directory overwrites; concurrent
    misses for one domain share a lock so only one refetch happens.
    """

    def __init__(self, store: ReferenceStore, clock: Callable[[], float] = time.time):
        self.store = store
        self._clock = clock
        self._memory: Dict[str, StoredDirectory] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._metrics = get_metrics_collector()

    def _lock_for(self, domain: str) -> asyncio.Lock:
        lock = self._locks.get(domain)
        if lock is None:
            lock = self._locks[domain] = asyncio.Lock()
        return lock

    async def load(self, domain: str) -> Optional[Directory]:
        """Return a fresh directory from memory or the backing store, else None."""
        stored = await self.load_stored(domain)
        return stored.data if stored else None

    async def load_stored(self, domain: str) -> Optional[StoredDirectory]:
        now = self._clock()
        cached = self._memory.get(domain)
        if cached is not None:
            if cached.is_fresh(now, self.store.freshness_seconds):
                self._metrics.increment_counter("reference_cache.hit", source="memory")
                return cached
            del self._memory[domain]

        try:
            stored = await self.store.load(domain, now=now)
        except Exception as e:
            logger.warning(f"Reference store load failed for {domain}: {e}")
            stored = None

        if stored is None:
            self._metrics.increment_counter("reference_cache.miss")
            return None

        self._metrics.increment_counter("reference_cache.hit", source="store")
        self._memory[domain] = stored
        return stored

    async def save(self, domain: str, directory: Directory) -> StoredDirectory:
        """Persist a freshly fetched directory, replacing any earlier blob."""
        stored = StoredDirectory(domain=domain, data=directory, fetched_at=self._clock())
        self._memory[domain] = stored
        try:
            await self.store.save(domain, directory, fetched_at=stored.fetched_at)
        except Exception as e:
            # Persistence is best effort; the in-memory copy still serves this process
            logger.warning(f"Could not persist player directory for {domain}: {e}")
        return stored

    async def get_or_fetch(
        self,
        domain: str,
        fetcher: Callable[[str], Awaitable[Directory]],
        force: bool = False
    ) -> StoredDirectory:
        """
        Return the directory for ``domain``, refetching it in full on a miss.

        Raises:
            ReferenceUnavailable: if nothing is cached and the fetch fails
        """
        if not force:
            stored = await self.load_stored(domain)
            if stored is not None:
                return stored

        async with self._lock_for(domain):
            # Another waiter may have refilled while we queued on the lock
            if not force:
                cached = self._memory.get(domain)
                if cached is not None and cached.is_fresh(self._clock(), self.store.freshness_seconds):
                    return cached

            try:
                directory = await fetcher(domain)
            except UpstreamError as e:
                raise ReferenceUnavailable(domain, e.message) from e

            self._metrics.increment_counter("reference_cache.refresh", domain=domain)
            return await self.save(domain, directory)

    def invalidate(self, domain: Optional[str] = None) -> None:
        """Drop the in-memory copy (all domains when ``domain`` is None)."""
        if domain is None:
            self._memory.clear()
        else:
            self._memory.pop(domain, None)
