"""
Request routing between the two caches and the Sleeper API.

Bulk player-directory paths go to the ``ReferenceCache``; everything else is
served read-through from the ``ResultCache``. Upstream failures propagate as
``UpstreamError`` and are never retried here.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from .cache_policy import reference_domain
from .reference_store import Directory, ReferenceCache, StoredDirectory
from .result_cache import MISSING, ResultCache
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)


class RequestRouter:
    """Owns the cache instances for one process and orchestrates fetches."""

    def __init__(self, result_cache: ResultCache, reference_cache: ReferenceCache, upstream: UpstreamClient):
        self.result_cache = result_cache
        self.reference_cache = reference_cache
        self.upstream = upstream

    async def fetch(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Return the JSON body for ``path``, from cache when possible."""
        domain = reference_domain(path)
        if domain is not None:
            return await self.load_directory(domain)

        cached = self.result_cache.lookup(path, params)
        if cached is not MISSING:
            logger.debug(f"Result cache hit: {path}")
            return cached

        logger.debug(f"Result cache miss: {path}")
        value = await self.upstream.get(path, params)
        self.result_cache.set(path, params, value)
        return value

    async def load_directory(self, domain: str, force: bool = False) -> Directory:
        """
        Return the full player directory for ``domain``.

        Raises:
            ReferenceUnavailable: if it is neither persisted nor fetchable
        """
        stored = await self.reference_cache.get_or_fetch(domain, self.upstream.get_directory, force=force)
        return stored.data

    async def refresh_directory(self, domain: str) -> StoredDirectory:
        """Refetch and persist the directory regardless of freshness."""
        return await self.reference_cache.get_or_fetch(domain, self.upstream.get_directory, force=True)

    async def cached_directory(self, domain: str) -> Optional[Directory]:
        """Directory if already persisted and fresh; never calls upstream."""
        return await self.reference_cache.load(domain)

    def stats(self) -> Dict[str, Any]:
        return {"result_cache": self.result_cache.stats()}
