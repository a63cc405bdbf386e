"""
Tests for operation dispatch: validation, routing, enrichment and envelopes.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from sleeper_mcp.config_manager import ConfigurationModel
from sleeper_mcp.errors import ErrorType, UpstreamError
from sleeper_mcp.reference_store import FileReferenceStore, ReferenceCache
from sleeper_mcp.result_cache import ResultCache
from sleeper_mcp.router import RequestRouter
from sleeper_mcp.service import SleeperService, ALL_OPERATIONS
from sleeper_mcp.sleeper_tools import SLEEPER_OPERATIONS

DIRECTORY = {
    "1023": {"player_id": "1023", "full_name": "Player One", "position": "RB", "team": "SF"},
    "1988": {"player_id": "1988", "full_name": "Player Two", "position": "WR", "team": "DAL"},
}


@pytest.fixture
def upstream():
    client = MagicMock()
    client.get = AsyncMock()
    client.get_directory = AsyncMock(return_value=DIRECTORY)
    return client


@pytest.fixture
def service(tmp_path, upstream):
    router = RequestRouter(ResultCache(), ReferenceCache(FileReferenceStore(str(tmp_path))), upstream)
    return SleeperService(router)


class TestCatalog:

    def test_operation_names_unique(self):
        names = [op.name for op in ALL_OPERATIONS]
        assert len(names) == len(set(names))

    def test_every_operation_has_path_or_handler(self):
        for op in ALL_OPERATIONS:
            assert (op.build_path is None) != (op.handler is None), op.name

    @pytest.mark.parametrize("name,params,expected", [
        ("get_user", {"identifier": "sleeperuser"}, ("/user/sleeperuser", None)),
        ("get_user_leagues", {"user_id": "12345", "season": "2024", "sport": "nfl"}, ("/user/12345/leagues/nfl/2024", None)),
        ("get_user_drafts", {"user_id": "12345", "season": "2024", "sport": "nfl"}, ("/user/12345/drafts/nfl/2024", None)),
        ("get_league", {"league_id": "1"}, ("/league/1", None)),
        ("get_league_rosters", {"league_id": "1"}, ("/league/1/rosters", None)),
        ("get_league_users", {"league_id": "1"}, ("/league/1/users", None)),
        ("get_league_matchups", {"league_id": "1", "week": 3}, ("/league/1/matchups/3", None)),
        ("get_league_playoff_bracket", {"league_id": "1", "bracket_type": "losers"}, ("/league/1/losers_bracket", None)),
        ("get_league_transactions", {"league_id": "1", "round": 4}, ("/league/1/transactions/4", None)),
        ("get_league_traded_picks", {"league_id": "1"}, ("/league/1/traded_picks", None)),
        ("get_league_drafts", {"league_id": "1"}, ("/league/1/drafts", None)),
        ("get_draft", {"draft_id": "9"}, ("/draft/9", None)),
        ("get_draft_picks", {"draft_id": "9"}, ("/draft/9/picks", None)),
        ("get_draft_traded_picks", {"draft_id": "9"}, ("/draft/9/traded_picks", None)),
        ("get_trending_players", {"sport": "nfl", "trend_type": "drop", "lookback_hours": 48, "limit": 10},
         ("/players/nfl/trending/drop", {"lookback_hours": 48, "limit": 10})),
        ("get_nfl_state", {"sport": "nfl"}, ("/state/nfl", None)),
    ])
    def test_paths(self, service, name, params, expected):
        assert service.get_operation(name).build_path(params) == expected

    def test_list_operations(self, service):
        listing = {op["name"]: op for op in service.list_operations()}
        assert listing["get_league_matchups"]["parameters"]["week"]["required"] is True
        assert listing["get_trending_players"]["parameters"]["limit"]["default"] == 25
        assert len(listing) == len(SLEEPER_OPERATIONS) + 6


class TestResolve:

    @pytest.mark.asyncio
    async def test_unknown_operation(self, service):
        result = await service.resolve("get_everything", {})
        assert result["success"] is False
        assert result["error_type"] == ErrorType.UNKNOWN_OPERATION

    @pytest.mark.asyncio
    async def test_validation_happens_before_upstream(self, service, upstream):
        result = await service.resolve("get_league_matchups", {"league_id": "1", "week": 40})

        assert result["success"] is False
        assert result["error_type"] == ErrorType.VALIDATION
        assert result["matchups"] == []
        assert result["count"] == 0
        upstream.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_path_injection_rejected(self, service, upstream):
        result = await service.resolve("get_league", {"league_id": "1/../../user/x"})
        assert result["error_type"] == ErrorType.VALIDATION
        upstream.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_plain_operation(self, service, upstream):
        upstream.get.return_value = {"league_id": "1", "name": "Test League"}
        result = await service.resolve("get_league", {"league_id": "1"})

        assert result["success"] is True
        assert result["league"]["name"] == "Test League"
        assert "count" not in result
        upstream.get_directory.assert_not_called()

    @pytest.mark.asyncio
    async def test_rosters_are_enriched(self, service, upstream):
        upstream.get.return_value = [{"roster_id": 1, "owner_id": "55", "players": ["1023", "1988"], "starters": ["1988"]}]
        result = await service.resolve("get_league_rosters", {"league_id": "1"})

        roster = result["rosters"][0]
        assert result["success"] is True
        assert result["count"] == 1
        assert roster["players"] == ["1023", "1988"]
        assert [p["full_name"] for p in roster["players_enriched"]] == ["Player One", "Player Two"]
        assert roster["starters_enriched"][0]["position"] == "WR"

    @pytest.mark.asyncio
    async def test_echo_params(self, service, upstream):
        upstream.get.return_value = []
        result = await service.resolve("get_league_matchups", {"league_id": "1", "week": "5"})
        assert result["week"] == 5
        assert result["count"] == 0

    @pytest.mark.asyncio
    async def test_enrichment_failure_still_succeeds(self, service, upstream):
        upstream.get.return_value = [{"players": ["1023"]}]
        upstream.get_directory.side_effect = UpstreamError("HTTP 503", status_code=503)

        result = await service.resolve("get_league_rosters", {"league_id": "1"})

        assert result["success"] is True
        assert result["rosters"] == [{"players": ["1023"]}]

    @pytest.mark.asyncio
    async def test_upstream_error_envelope(self, service, upstream):
        upstream.get.side_effect = UpstreamError("Sleeper API resource not found: /league/1", status_code=404)
        result = await service.resolve("get_league_rosters", {"league_id": "1"})

        assert result["success"] is False
        assert result["error_type"] == ErrorType.HTTP
        assert result["status_code"] == 404
        assert result["rosters"] == []

    @pytest.mark.asyncio
    async def test_null_single_object_is_not_found(self, service, upstream):
        upstream.get.return_value = None
        result = await service.resolve("get_user", {"identifier": "nobody"})

        assert result["success"] is False
        assert result["error_type"] == ErrorType.NOT_FOUND
        assert result["user"] is None

    @pytest.mark.asyncio
    async def test_null_list_becomes_empty(self, service, upstream):
        upstream.get.return_value = None
        result = await service.resolve("get_league_playoff_bracket", {"league_id": "1"})

        assert result["success"] is True
        assert result["bracket"] == []
        assert result["bracket_type"] == "winners"

    @pytest.mark.asyncio
    async def test_trending_defaults(self, service, upstream):
        upstream.get.return_value = [{"player_id": "1023", "count": 1500}]
        result = await service.resolve("get_trending_players", {})

        upstream.get.assert_awaited_once_with("/players/nfl/trending/add", {"lookback_hours": 24, "limit": 25})
        assert result["trending_players"][0]["player_enriched"]["full_name"] == "Player One"
        assert result["trend_type"] == "add"

    @pytest.mark.asyncio
    async def test_enrichment_without_fetch_on_miss(self, tmp_path, upstream):
        router = RequestRouter(ResultCache(), ReferenceCache(FileReferenceStore(str(tmp_path))), upstream)
        service = SleeperService(router, fetch_directory_on_miss=False)
        upstream.get.return_value = [{"players": ["1023"]}]

        result = await service.resolve("get_league_rosters", {"league_id": "1"})

        assert result["rosters"] == [{"players": ["1023"]}]
        upstream.get_directory.assert_not_called()


class TestFromConfig:

    def test_builds_from_configuration(self, tmp_path):
        config = ConfigurationModel(
            reference={"cache_dir": str(tmp_path), "default_domain": "nfl"},
            enrichment={"enabled": False},
        )
        service = SleeperService.from_config(config)

        assert isinstance(service.router.reference_cache.store, FileReferenceStore)
        assert service.enrichment.enabled is False
        assert service.router.upstream.base_url == "https://api.sleeper.app/v1"
