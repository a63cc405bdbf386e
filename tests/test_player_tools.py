"""
Tests for the player directory operations.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from sleeper_mcp.errors import ErrorType, UpstreamError
from sleeper_mcp.reference_store import FileReferenceStore, ReferenceCache
from sleeper_mcp.result_cache import ResultCache
from sleeper_mcp.router import RequestRouter
from sleeper_mcp.service import SleeperService

DIRECTORY = {
    "4046": {"player_id": "4046", "full_name": "Patrick Mahomes", "first_name": "Patrick", "last_name": "Mahomes",
             "position": "QB", "fantasy_positions": ["QB"], "team": "KC", "status": "Active"},
    "4881": {"player_id": "4881", "full_name": "Lamar Jackson", "first_name": "Lamar", "last_name": "Jackson",
             "position": "QB", "fantasy_positions": ["QB"], "team": "BAL", "status": "Active"},
    "4866": {"player_id": "4866", "full_name": "Saquon Barkley", "first_name": "Saquon", "last_name": "Barkley",
             "position": "RB", "fantasy_positions": ["RB"], "team": "PHI", "status": "Active"},
    "5012": {"player_id": "5012", "full_name": "Mark Andrews", "first_name": "Mark", "last_name": "Andrews",
             "position": "TE", "fantasy_positions": ["TE"], "team": "BAL", "status": "Active",
             "injury_status": "Questionable"},
    "KC": {"player_id": "KC", "first_name": "Kansas City", "last_name": "Chiefs", "position": "DEF",
           "fantasy_positions": ["DEF"], "team": "KC"},
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


class TestGetPlayer:

    @pytest.mark.asyncio
    async def test_found(self, service):
        result = await service.resolve("get_player", {"player_id": "4046"})
        assert result["success"] is True
        assert result["player"] == DIRECTORY["4046"]

    @pytest.mark.asyncio
    async def test_team_defense(self, service):
        result = await service.resolve("get_player", {"player_id": "KC"})
        assert result["player"]["position"] == "DEF"

    @pytest.mark.asyncio
    async def test_not_found(self, service):
        result = await service.resolve("get_player", {"player_id": "99999"})
        assert result["success"] is False
        assert result["error_type"] == ErrorType.NOT_FOUND
        assert result["player"] is None

    @pytest.mark.asyncio
    async def test_directory_fetched_once(self, service, upstream):
        await service.resolve("get_player", {"player_id": "4046"})
        await service.resolve("get_player", {"player_id": "4881"})
        upstream.get_directory.assert_awaited_once_with("nfl")

    @pytest.mark.asyncio
    async def test_directory_unavailable(self, service, upstream):
        upstream.get_directory.side_effect = UpstreamError("Network error while fetching /players/nfl")
        result = await service.resolve("get_player", {"player_id": "4046"})
        assert result["success"] is False
        assert result["error_type"] == ErrorType.REFERENCE_UNAVAILABLE


class TestGetPlayers:

    @pytest.mark.asyncio
    async def test_batch_lookup(self, service):
        result = await service.resolve("get_players", {"player_ids": ["5012", "1", "4046", "5012"]})

        assert [p["player_id"] for p in result["players"]] == ["5012", "4046"]
        assert result["players"][0]["warnings"] == ["questionable"]
        assert result["missing"] == ["1"]
        assert result["count"] == 2

    @pytest.mark.asyncio
    async def test_invalid_ids_rejected(self, service):
        result = await service.resolve("get_players", {"player_ids": ["4046", "../x"]})
        assert result["error_type"] == ErrorType.VALIDATION


class TestSearch:

    @pytest.mark.asyncio
    async def test_substring_case_insensitive(self, service):
        result = await service.resolve("search_players", {"query": "jACK"})
        assert [p["full_name"] for p in result["players"]] == ["Lamar Jackson"]
        assert result["search_term"] == "jACK"

    @pytest.mark.asyncio
    async def test_matches_first_and_last_names_sorted(self, service):
        result = await service.resolve("search_players", {"query": "mar"})
        assert [p["full_name"] for p in result["players"]] == ["Lamar Jackson", "Mark Andrews"]

    @pytest.mark.asyncio
    async def test_limit(self, service):
        result = await service.resolve("search_players", {"query": "a", "limit": 2})
        assert result["count"] == 2

    @pytest.mark.asyncio
    async def test_limit_bounds(self, service):
        result = await service.resolve("search_players", {"query": "a", "limit": 1000})
        assert result["error_type"] == ErrorType.VALIDATION


class TestListings:

    @pytest.mark.asyncio
    async def test_by_position(self, service):
        result = await service.resolve("get_players_by_position", {"position": "qb"})
        assert result["position"] == "QB"
        assert [p["player_id"] for p in result["players"]] == ["4881", "4046"]

    @pytest.mark.asyncio
    async def test_by_team(self, service):
        result = await service.resolve("get_players_by_team", {"team": "BAL"})
        assert {p["player_id"] for p in result["players"]} == {"4881", "5012"}
        assert result["count"] == 2

    @pytest.mark.asyncio
    async def test_defense_listed_with_team(self, service):
        result = await service.resolve("get_players_by_team", {"team": "kc"})
        assert [p["full_name"] for p in result["players"]] == ["Kansas City Chiefs", "Patrick Mahomes"]


class TestRefresh:

    @pytest.mark.asyncio
    async def test_refresh_forces_fetch_and_persists(self, service, upstream, tmp_path):
        await service.resolve("get_player", {"player_id": "4046"})
        result = await service.resolve("refresh_players", {})

        assert result["success"] is True
        assert result["player_count"] == len(DIRECTORY)
        assert result["sport"] == "nfl"
        assert "fetched_at" in result
        assert upstream.get_directory.await_count == 2
        assert (tmp_path / "players-nfl.json").exists()

    @pytest.mark.asyncio
    async def test_refresh_failure(self, service, upstream):
        upstream.get_directory.side_effect = UpstreamError("HTTP 500", status_code=500)
        result = await service.resolve("refresh_players", {})
        assert result["success"] is False
        assert result["player_count"] == 0
