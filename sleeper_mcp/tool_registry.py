"""Tool registry for Sleeper MCP Server.

Every catalog operation is exposed as a plain typed async function so FastMCP
can derive the tool schema from the signature and docstring. The functions
only forward to ``SleeperService.resolve``; validation, caching and
enrichment happen there.
"""
from __future__ import annotations
from typing import Optional, List, Callable

from .errors import create_error_response, ErrorType
from .metrics import timing_decorator
from .service import SleeperService

# Shared service instance - will be initialized by server
_service: SleeperService | None = None


def initialize_shared(service: SleeperService):
    """Install the service constructed by the server."""
    global _service
    _service = service


def get_service() -> SleeperService | None:
    return _service


def get_all_tools() -> List[Callable]:
    """Get list of all tool functions to register with FastMCP server."""
    return [
        # Users
        get_user,
        get_user_leagues,
        get_user_drafts,

        # Leagues
        get_league,
        get_league_rosters,
        get_league_users,
        get_league_matchups,
        get_league_playoff_bracket,
        get_league_transactions,
        get_league_traded_picks,
        get_league_drafts,

        # Drafts
        get_draft,
        get_draft_picks,
        get_draft_traded_picks,

        # Players and state
        get_trending_players,
        get_nfl_state,

        # Player directory
        get_player,
        get_players,
        search_players,
        get_players_by_position,
        get_players_by_team,
        refresh_players,
    ]


async def _call(name: str, **params) -> dict:
    if _service is None:
        return create_error_response("Sleeper service not initialized", ErrorType.UNEXPECTED)
    return await _service.resolve(name, params)


# =============================================================================
# USERS
# =============================================================================

@timing_decorator("get_user", tool_type="sleeper")
async def get_user(identifier: str) -> dict:
    """Get a Sleeper user by username or user id.

    Returns user_id, username, display_name and avatar.
    """
    return await _call("get_user", identifier=identifier)


@timing_decorator("get_user_leagues", tool_type="sleeper")
async def get_user_leagues(user_id: str, season: str, sport: str = "nfl") -> dict:
    """Get all leagues a user belongs to for a season (e.g. "2024")."""
    return await _call("get_user_leagues", user_id=user_id, season=season, sport=sport)


@timing_decorator("get_user_drafts", tool_type="sleeper")
async def get_user_drafts(user_id: str, season: str, sport: str = "nfl") -> dict:
    """Get all drafts a user took part in for a season."""
    return await _call("get_user_drafts", user_id=user_id, season=season, sport=sport)


# =============================================================================
# LEAGUES
# =============================================================================

@timing_decorator("get_league", tool_type="sleeper")
async def get_league(league_id: str) -> dict:
    """Get league settings, scoring settings and roster positions."""
    return await _call("get_league", league_id=league_id)


@timing_decorator("get_league_rosters", tool_type="sleeper")
async def get_league_rosters(league_id: str) -> dict:
    """Get all rosters in a league.

    Each roster keeps the raw ``players``, ``starters``, ``reserve`` and
    ``taxi`` id lists and gains ``*_enriched`` lists with name, position,
    team, injury status and warnings for every known player.
    """
    return await _call("get_league_rosters", league_id=league_id)


@timing_decorator("get_league_users", tool_type="sleeper")
async def get_league_users(league_id: str) -> dict:
    """Get all users (team owners) in a league."""
    return await _call("get_league_users", league_id=league_id)


@timing_decorator("get_league_matchups", tool_type="sleeper")
async def get_league_matchups(league_id: str, week: int) -> dict:
    """Get matchups for a week (1-22).

    ``players_points_enriched`` lists every scoring player, highest points first.
    """
    return await _call("get_league_matchups", league_id=league_id, week=week)


@timing_decorator("get_league_playoff_bracket", tool_type="sleeper")
async def get_league_playoff_bracket(league_id: str, bracket_type: str = "winners") -> dict:
    """Get the playoff bracket; bracket_type is "winners" or "losers"."""
    return await _call("get_league_playoff_bracket", league_id=league_id, bracket_type=bracket_type)


@timing_decorator("get_league_transactions", tool_type="sleeper")
async def get_league_transactions(league_id: str, round: int) -> dict:
    """Get transactions for a round (week) with adds/drops resolved to players."""
    return await _call("get_league_transactions", league_id=league_id, round=round)


@timing_decorator("get_league_traded_picks", tool_type="sleeper")
async def get_league_traded_picks(league_id: str) -> dict:
    """Get all traded draft picks in a league."""
    return await _call("get_league_traded_picks", league_id=league_id)


@timing_decorator("get_league_drafts", tool_type="sleeper")
async def get_league_drafts(league_id: str) -> dict:
    """Get all drafts of a league."""
    return await _call("get_league_drafts", league_id=league_id)


# =============================================================================
# DRAFTS
# =============================================================================

@timing_decorator("get_draft", tool_type="sleeper")
async def get_draft(draft_id: str) -> dict:
    """Get a draft's settings, order and status."""
    return await _call("get_draft", draft_id=draft_id)


@timing_decorator("get_draft_picks", tool_type="sleeper")
async def get_draft_picks(draft_id: str) -> dict:
    """Get all picks of a draft; each pick gains ``player_enriched``."""
    return await _call("get_draft_picks", draft_id=draft_id)


@timing_decorator("get_draft_traded_picks", tool_type="sleeper")
async def get_draft_traded_picks(draft_id: str) -> dict:
    """Get picks traded within a draft."""
    return await _call("get_draft_traded_picks", draft_id=draft_id)


# =============================================================================
# PLAYERS AND STATE
# =============================================================================

@timing_decorator("get_trending_players", tool_type="sleeper")
async def get_trending_players(
    trend_type: str = "add",
    lookback_hours: Optional[int] = 24,
    limit: Optional[int] = 25,
    sport: str = "nfl"
) -> dict:
    """Get players trending on waivers.

    Args:
        trend_type: "add" or "drop"
        lookback_hours: Window in hours (1-168)
        limit: Number of players (1-100)
        sport: Sport code
    """
    return await _call(
        "get_trending_players",
        trend_type=trend_type, lookback_hours=lookback_hours, limit=limit, sport=sport
    )


@timing_decorator("get_nfl_state", tool_type="sleeper")
async def get_nfl_state(sport: str = "nfl") -> dict:
    """Get the current season, week and season type."""
    return await _call("get_nfl_state", sport=sport)


# =============================================================================
# PLAYER DIRECTORY
# =============================================================================

@timing_decorator("get_player", tool_type="players")
async def get_player(player_id: str, sport: str = "nfl") -> dict:
    """Get the full Sleeper record for one player id (team code for defenses)."""
    return await _call("get_player", player_id=player_id, sport=sport)


@timing_decorator("get_players", tool_type="players")
async def get_players(player_ids: List[str], sport: str = "nfl") -> dict:
    """Resolve several player ids at once; unknown ids are listed in ``missing``."""
    return await _call("get_players", player_ids=player_ids, sport=sport)


@timing_decorator("search_players", tool_type="players")
async def search_players(query: str, limit: Optional[int] = 10, sport: str = "nfl") -> dict:
    """Search players by full, first or last name (partial, case-insensitive)."""
    return await _call("search_players", query=query, limit=limit, sport=sport)


@timing_decorator("get_players_by_position", tool_type="players")
async def get_players_by_position(position: str, limit: Optional[int] = 50, sport: str = "nfl") -> dict:
    """List players at a position such as QB, RB, WR, TE, K or DEF."""
    return await _call("get_players_by_position", position=position, limit=limit, sport=sport)


@timing_decorator("get_players_by_team", tool_type="players")
async def get_players_by_team(team: str, limit: Optional[int] = 50, sport: str = "nfl") -> dict:
    """List players on a team by team code (e.g. KC)."""
    return await _call("get_players_by_team", team=team, limit=limit, sport=sport)


@timing_decorator("refresh_players", tool_type="players")
async def refresh_players(sport: str = "nfl") -> dict:
    """Refetch and persist the full player directory (several megabytes)."""
    return await _call("refresh_players", sport=sport)
