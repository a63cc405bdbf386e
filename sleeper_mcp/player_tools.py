"""
Player directory operations.

These tools answer from the full Sleeper player directory held by the
reference cache instead of calling a per-request endpoint. Each handler
receives the ``SleeperService`` and validated parameters and returns the
operation payload; the service wraps it in the response envelope.
"""

import logging
from datetime import datetime, UTC
from typing import Any, Dict, Iterable, List, Tuple

from .config import LIMITS, SAFE_PATTERNS
from .enrichment import EntityRecord
from .errors import SleeperMCPError, ErrorType
from .sleeper_tools import Operation, SPORT_PARAM

logger = logging.getLogger(__name__)


def _records(items: Iterable[Tuple[str, Dict[str, Any]]]) -> List[Dict[str, Any]]:
    records = [EntityRecord.from_upstream(pid, raw).to_dict() for pid, raw in items if isinstance(raw, dict)]
    records.sort(key=lambda r: (r["full_name"] or "").lower())
    return records


async def get_player(service, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Look up one player by Sleeper player id.

    Returns the full upstream player object, not the normalized record.
    """
    directory = await service.router.load_directory(params["sport"])
    player = directory.get(params["player_id"])
    if player is None:
        raise SleeperMCPError(f"Player with ID '{params['player_id']}' not found", ErrorType.NOT_FOUND)
    return {"player": player}


async def get_players(service, params: Dict[str, Any]) -> Dict[str, Any]:
    """Batch lookup; unknown ids are reported in ``missing`` instead of failing."""
    directory = await service.router.load_directory(params["sport"])
    ids = list(dict.fromkeys(params["player_ids"]))
    found = [EntityRecord.from_upstream(pid, directory[pid]).to_dict() for pid in ids if pid in directory]
    missing = [pid for pid in ids if pid not in directory]
    return {"players": found, "count": len(found), "missing": missing}


async def search_players(service, params: Dict[str, Any]) -> Dict[str, Any]:
    """Case-insensitive substring search over full, first and last names."""
    directory = await service.router.load_directory(params["sport"])
    needle = params["query"].lower()

    def matches(raw: Dict[str, Any]) -> bool:
        names = (raw.get("full_name"), raw.get("first_name"), raw.get("last_name"))
        return any(needle in name.lower() for name in names if isinstance(name, str))

    results = _records((pid, raw) for pid, raw in directory.items() if isinstance(raw, dict) and matches(raw))
    results = results[:params["limit"]]
    return {"players": results, "count": len(results), "search_term": params["query"]}


async def get_players_by_position(service, params: Dict[str, Any]) -> Dict[str, Any]:
    directory = await service.router.load_directory(params["sport"])
    position = params["position"].upper()
    results = _records(
        (pid, raw) for pid, raw in directory.items()
        if isinstance(raw, dict) and (raw.get("position") == position or position in (raw.get("fantasy_positions") or []))
    )
    results = results[:params["limit"]]
    return {"players": results, "count": len(results), "position": position}


async def get_players_by_team(service, params: Dict[str, Any]) -> Dict[str, Any]:
    directory = await service.router.load_directory(params["sport"])
    team = params["team"].upper()
    results = _records((pid, raw) for pid, raw in directory.items() if isinstance(raw, dict) and raw.get("team") == team)
    results = results[:params["limit"]]
    return {"players": results, "count": len(results), "team": team}


async def refresh_players(service, params: Dict[str, Any]) -> Dict[str, Any]:
    """Force a full directory refetch and persist it. The payload is not returned."""
    stored = await service.router.refresh_directory(params["sport"])
    logger.info(f"Player directory refreshed for {params['sport']}: {len(stored.data)} players")
    return {
        "player_count": len(stored.data),
        "fetched_at": datetime.fromtimestamp(stored.fetched_at, UTC).isoformat(),
        "sport": params["sport"],
    }


def _search_limit() -> Dict[str, Any]:
    return {
        "type": int, "default": LIMITS["player_search_default"],
        "min": LIMITS["player_search_min"], "max": LIMITS["player_search_max"],
    }


def _list_limit() -> Dict[str, Any]:
    return {
        "type": int, "default": LIMITS["player_list_default"],
        "min": LIMITS["player_list_min"], "max": LIMITS["player_list_max"],
    }


PLAYER_OPERATIONS: List[Operation] = [
    Operation(
        name="get_player",
        description="Get the full Sleeper record of one player by player id.",
        schema={
            "player_id": {"type": str, "required": True, "pattern": SAFE_PATTERNS["player_id"]},
            "sport": SPORT_PARAM,
        },
        handler=get_player,
        result_key="player",
    ),
    Operation(
        name="get_players",
        description="Resolve several player ids to name, position, team and injury status.",
        schema={
            "player_ids": {
                "type": list, "required": True, "max_items": LIMITS["player_list_max"],
                "item_pattern": SAFE_PATTERNS["player_id"],
            },
            "sport": SPORT_PARAM,
        },
        handler=get_players,
        result_key="players",
        empty_result=list,
        count=True,
    ),
    Operation(
        name="search_players",
        description="Search players by (partial) name.",
        schema={
            "query": {"type": str, "required": True, "pattern": SAFE_PATTERNS["search_query"]},
            "limit": _search_limit(),
            "sport": SPORT_PARAM,
        },
        handler=search_players,
        result_key="players",
        empty_result=list,
        count=True,
    ),
    Operation(
        name="get_players_by_position",
        description="List players at a position (QB, RB, WR, TE, K, DEF, ...).",
        schema={
            "position": {"type": str, "required": True, "pattern": SAFE_PATTERNS["position"]},
            "limit": _list_limit(),
            "sport": SPORT_PARAM,
        },
        handler=get_players_by_position,
        result_key="players",
        empty_result=list,
        count=True,
    ),
    Operation(
        name="get_players_by_team",
        description="List players on a team by team code (e.g. KC, SF).",
        schema={
            "team": {"type": str, "required": True, "pattern": SAFE_PATTERNS["team_code"]},
            "limit": _list_limit(),
            "sport": SPORT_PARAM,
        },
        handler=get_players_by_team,
        result_key="players",
        empty_result=list,
        count=True,
    ),
    Operation(
        name="refresh_players",
        description="Refetch and persist the full player directory for a sport.",
        schema={"sport": SPORT_PARAM},
        handler=refresh_players,
        result_key="player_count",
        empty_result=0,
    ),
]
