"""
Sleeper API operation catalog.

Each ``Operation`` names a tool, declares its parameter schema (see
``param_validator``) and builds the upstream path from validated parameters.
Nothing here talks to the network: ``SleeperService.resolve`` validates the
input, routes the path through the caches and enriches the result.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from .config import LIMITS, SAFE_PATTERNS

PathSpec = Tuple[str, Optional[Dict[str, Any]]]


@dataclass(frozen=True)
class Operation:
    """One read-only catalog entry.

    Exactly one of ``build_path`` (pass-through to the Sleeper API) or
    ``handler`` (custom coroutine over the service, used by the player
    directory operations) is set.
    """
    name: str
    description: str
    schema: Dict[str, Dict[str, Any]]
    result_key: str
    build_path: Optional[Callable[[Dict[str, Any]], PathSpec]] = None
    handler: Optional[Callable[..., Awaitable[Dict[str, Any]]]] = None
    enrich: bool = False
    empty_result: Any = None
    echo: Tuple[str, ...] = ()
    count: bool = False

    def default_data(self) -> Dict[str, Any]:
        """Payload shape carried by error envelopes for this operation."""
        empty = self.empty_result() if callable(self.empty_result) else self.empty_result
        data = {self.result_key: empty}
        if self.count:
            data["count"] = 0
        return data


# ---------------------------------------------------------------------------
# Shared parameter specs
# ---------------------------------------------------------------------------

def _id_param(pattern_name: str = "sleeper_id") -> Dict[str, Any]:
    return {"type": str, "required": True, "pattern": SAFE_PATTERNS[pattern_name], "max_length": 40}


SPORT_PARAM = {"type": str, "default": "nfl", "pattern": SAFE_PATTERNS["sport"]}
SEASON_PARAM = {"type": str, "required": True, "pattern": SAFE_PATTERNS["season"]}
WEEK_PARAM = {"type": int, "required": True, "min": LIMITS["week_min"], "max": LIMITS["week_max"]}
ROUND_PARAM = {"type": int, "required": True, "min": LIMITS["round_min"], "max": LIMITS["round_max"]}


def _league(suffix: str = "") -> Callable[[Dict[str, Any]], PathSpec]:
    return lambda p: (f"/league/{p['league_id']}{suffix}", None)


def _draft(suffix: str = "") -> Callable[[Dict[str, Any]], PathSpec]:
    return lambda p: (f"/draft/{p['draft_id']}{suffix}", None)


def _trending_path(p: Mapping[str, Any]) -> PathSpec:
    return (
        f"/players/{p['sport']}/trending/{p['trend_type']}",
        {"lookback_hours": p["lookback_hours"], "limit": p["limit"]},
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

SLEEPER_OPERATIONS: List[Operation] = [
    # Users
    Operation(
        name="get_user",
        description="Get a Sleeper user by username or user id.",
        schema={"identifier": _id_param("user_identifier")},
        build_path=lambda p: (f"/user/{p['identifier']}", None),
        result_key="user",
    ),
    Operation(
        name="get_user_leagues",
        description="Get all leagues a user belongs to for a sport and season.",
        schema={"user_id": _id_param(), "season": SEASON_PARAM, "sport": SPORT_PARAM},
        build_path=lambda p: (f"/user/{p['user_id']}/leagues/{p['sport']}/{p['season']}", None),
        result_key="leagues",
        empty_result=list,
        echo=("season",),
        count=True,
    ),
    Operation(
        name="get_user_drafts",
        description="Get all drafts a user took part in for a sport and season.",
        schema={"user_id": _id_param(), "season": SEASON_PARAM, "sport": SPORT_PARAM},
        build_path=lambda p: (f"/user/{p['user_id']}/drafts/{p['sport']}/{p['season']}", None),
        result_key="drafts",
        empty_result=list,
        echo=("season",),
        count=True,
    ),

    # Leagues
    Operation(
        name="get_league",
        description="Get league settings, scoring and roster positions.",
        schema={"league_id": _id_param()},
        build_path=_league(),
        result_key="league",
    ),
    Operation(
        name="get_league_rosters",
        description="Get all rosters in a league with players resolved to names, positions and teams.",
        schema={"league_id": _id_param()},
        build_path=_league("/rosters"),
        result_key="rosters",
        enrich=True,
        empty_result=list,
        count=True,
    ),
    Operation(
        name="get_league_users",
        description="Get all users (owners) in a league.",
        schema={"league_id": _id_param()},
        build_path=_league("/users"),
        result_key="users",
        empty_result=list,
        count=True,
    ),
    Operation(
        name="get_league_matchups",
        description="Get matchups for one week with per-player points ranked highest first.",
        schema={"league_id": _id_param(), "week": WEEK_PARAM},
        build_path=lambda p: (f"/league/{p['league_id']}/matchups/{p['week']}", None),
        result_key="matchups",
        enrich=True,
        empty_result=list,
        echo=("week",),
        count=True,
    ),
    Operation(
        name="get_league_playoff_bracket",
        description="Get the winners or losers playoff bracket of a league.",
        schema={
            "league_id": _id_param(),
            "bracket_type": {"type": str, "default": "winners", "choices": ["winners", "losers"]},
        },
        build_path=lambda p: (f"/league/{p['league_id']}/{p['bracket_type']}_bracket", None),
        result_key="bracket",
        empty_result=list,
        echo=("bracket_type",),
    ),
    Operation(
        name="get_league_transactions",
        description="Get trades, waivers and free agent moves for one round (week).",
        schema={"league_id": _id_param(), "round": ROUND_PARAM},
        build_path=lambda p: (f"/league/{p['league_id']}/transactions/{p['round']}", None),
        result_key="transactions",
        enrich=True,
        empty_result=list,
        echo=("round",),
        count=True,
    ),
    Operation(
        name="get_league_traded_picks",
        description="Get all traded draft picks in a league.",
        schema={"league_id": _id_param()},
        build_path=_league("/traded_picks"),
        result_key="traded_picks",
        empty_result=list,
        count=True,
    ),
    Operation(
        name="get_league_drafts",
        description="Get all drafts of a league.",
        schema={"league_id": _id_param()},
        build_path=_league("/drafts"),
        result_key="drafts",
        empty_result=list,
        count=True,
    ),

    # Drafts
    Operation(
        name="get_draft",
        description="Get a draft's settings, order and status.",
        schema={"draft_id": _id_param()},
        build_path=_draft(),
        result_key="draft",
    ),
    Operation(
        name="get_draft_picks",
        description="Get every pick made in a draft with the picked players resolved.",
        schema={"draft_id": _id_param()},
        build_path=_draft("/picks"),
        result_key="picks",
        enrich=True,
        empty_result=list,
        count=True,
    ),
    Operation(
        name="get_draft_traded_picks",
        description="Get picks traded within a draft.",
        schema={"draft_id": _id_param()},
        build_path=_draft("/traded_picks"),
        result_key="traded_picks",
        empty_result=list,
        count=True,
    ),

    # Players and state
    Operation(
        name="get_trending_players",
        description="Get players trending on waivers (adds or drops) over a lookback window.",
        schema={
            "trend_type": {"type": str, "default": "add", "choices": ["add", "drop"]},
            "lookback_hours": {
                "type": int, "default": 24,
                "min": LIMITS["trending_lookback_min"], "max": LIMITS["trending_lookback_max"],
            },
            "limit": {
                "type": int, "default": 25,
                "min": LIMITS["trending_limit_min"], "max": LIMITS["trending_limit_max"],
            },
            "sport": SPORT_PARAM,
        },
        build_path=_trending_path,
        result_key="trending_players",
        enrich=True,
        empty_result=list,
        echo=("trend_type", "lookback_hours"),
        count=True,
    ),
    Operation(
        name="get_nfl_state",
        description="Get the current season, week and season type.",
        schema={"sport": SPORT_PARAM},
        build_path=lambda p: (f"/state/{p['sport']}", None),
        result_key="nfl_state",
    ),
]
