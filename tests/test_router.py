"""
Tests for request routing between the caches and the upstream client.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from sleeper_mcp.errors import UpstreamError, ReferenceUnavailable
from sleeper_mcp.reference_store import FileReferenceStore, ReferenceCache
from sleeper_mcp.result_cache import ResultCache
from sleeper_mcp.router import RequestRouter

DIRECTORY = {"4046": {"full_name": "Patrick Mahomes"}}


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream():
    client = MagicMock()
    client.get = AsyncMock(return_value={"name": "Test League"})
    client.get_directory = AsyncMock(return_value=DIRECTORY)
    return client


@pytest.fixture
def router(tmp_path, clock, upstream):
    return RequestRouter(
        ResultCache(clock=clock),
        ReferenceCache(FileReferenceStore(str(tmp_path)), clock=clock),
        upstream,
    )


class TestResultCachePath:

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, router, upstream):
        first = await router.fetch("/league/123")
        second = await router.fetch("/league/123")

        assert first == second == {"name": "Test League"}
        upstream.get.assert_awaited_once_with("/league/123", None)
        assert router.result_cache.get_entry("/league/123").hit_count == 1

    @pytest.mark.asyncio
    async def test_params_passed_and_cached(self, router, upstream):
        upstream.get.return_value = [{"player_id": "4046", "count": 10}]
        await router.fetch("/players/nfl/trending/add", {"lookback_hours": 24, "limit": 5})
        await router.fetch("/players/nfl/trending/add", {"limit": 5, "lookback_hours": 24})

        upstream.get.assert_awaited_once_with("/players/nfl/trending/add", {"lookback_hours": 24, "limit": 5})

    @pytest.mark.asyncio
    async def test_expired_entry_refetched(self, router, upstream, clock):
        await router.fetch("/league/1/matchups/2")
        clock.now += 121
        await router.fetch("/league/1/matchups/2")
        assert upstream.get.await_count == 2

    @pytest.mark.asyncio
    async def test_cached_null_body_is_a_hit(self, router, upstream):
        upstream.get.return_value = None
        assert await router.fetch("/league/1/winners_bracket") is None
        assert await router.fetch("/league/1/winners_bracket") is None
        upstream.get.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upstream_error_propagates_and_is_not_cached(self, router, upstream):
        upstream.get.side_effect = UpstreamError("HTTP 500: Internal Server Error", status_code=500)
        with pytest.raises(UpstreamError):
            await router.fetch("/league/1")
        assert len(router.result_cache) == 0

        upstream.get.side_effect = None
        upstream.get.return_value = {"name": "Recovered"}
        assert await router.fetch("/league/1") == {"name": "Recovered"}

    @pytest.mark.asyncio
    async def test_concurrent_misses_last_write_wins(self, router, upstream):
        responses = iter([{"v": 1}, {"v": 2}])

        async def slow_get(path, params):
            value = next(responses)
            await asyncio.sleep(0)
            return value

        upstream.get.side_effect = slow_get
        await asyncio.gather(router.fetch("/league/1"), router.fetch("/league/1"))

        assert upstream.get.await_count == 2
        assert router.result_cache.get("/league/1") == {"v": 2}


class TestReferencePath:

    @pytest.mark.asyncio
    async def test_directory_bypasses_result_cache(self, router, upstream):
        result = await router.fetch("/players/nfl")

        assert result == DIRECTORY
        upstream.get_directory.assert_awaited_once_with("nfl")
        upstream.get.assert_not_called()
        assert len(router.result_cache) == 0

    @pytest.mark.asyncio
    async def test_directory_served_from_reference_cache(self, router, upstream):
        await router.load_directory("nfl")
        await router.fetch("/players/nfl")
        upstream.get_directory.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh_forces_fetch(self, router, upstream):
        await router.load_directory("nfl")
        stored = await router.refresh_directory("nfl")
        assert upstream.get_directory.await_count == 2
        assert stored.data == DIRECTORY

    @pytest.mark.asyncio
    async def test_cached_directory_never_fetches(self, router, upstream):
        assert await router.cached_directory("nfl") is None
        upstream.get_directory.assert_not_called()

    @pytest.mark.asyncio
    async def test_directory_unavailable(self, router, upstream):
        upstream.get_directory.side_effect = UpstreamError("Network error", status_code=None)
        with pytest.raises(ReferenceUnavailable):
            await router.fetch("/players/nfl")

    def test_stats(self, router):
        assert router.stats() == {"result_cache": {"entries": 0, "categories": {}}}
