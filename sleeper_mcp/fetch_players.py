#!/usr/bin/env python3
"""
Prefetch the full Sleeper player directory into the configured reference store.

Usage:
  sleeper-mcp-fetch-players
  sleeper-mcp-fetch-players nfl --config config.yml

Run periodically (e.g. daily) so the server never has to fetch the
multi-megabyte directory while answering a tool call.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, UTC
from typing import Optional, Sequence

from .config_manager import ConfigManager, get_config_manager
from .errors import SleeperMCPError
from .logging_config import setup_logging
from .reference_store import ReferenceCache, StoredDirectory, create_reference_store
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)


async def prefetch(sport: str, config_manager: ConfigManager) -> StoredDirectory:
    """Force a full refetch of ``sport`` and persist it through the configured backend."""
    config = config_manager.config
    cache = ReferenceCache(create_reference_store(config.reference))
    upstream = UpstreamClient(config.upstream.base_url, service_name="sleeper_players")
    return await cache.get_or_fetch(sport, upstream.get_directory, force=True)


def _summary(stored: StoredDirectory, backend: str) -> str:
    size_mb = len(json.dumps(stored.data)) / 1024 / 1024
    lines = [
        f"Players:   {len(stored.data)}",
        f"Size:      {size_mb:.2f} MB",
        f"Timestamp: {datetime.fromtimestamp(stored.fetched_at, UTC).isoformat()}",
        f"Backend:   {backend}",
    ]
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch the Sleeper player directory into the reference cache")
    parser.add_argument("sport", nargs="?", default=None, help="Sport code (default: configured default, usually nfl)")
    parser.add_argument("--config", default=None, help="Path to a YAML/JSON config file")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args(argv)

    setup_logging(log_level=args.log_level)

    config_manager = ConfigManager(args.config, enable_hot_reload=False) if args.config else get_config_manager()
    sport = (args.sport or config_manager.config.reference.default_domain).lower()

    try:
        stored = asyncio.run(prefetch(sport, config_manager))
    except SleeperMCPError as e:
        logger.error(f"Player directory fetch failed: {e.message}")
        print(f"Error fetching players for {sport}: {e.message}", file=sys.stderr)
        return 1
    finally:
        config_manager.stop()

    print(_summary(stored, config_manager.config.reference.backend))
    return 0


if __name__ == "__main__":
    sys.exit(main())
