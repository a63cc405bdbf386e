"""
TTL policy table and request-path classification for the result cache.

Every Sleeper path is classified into exactly one category by testing path
substrings in a fixed order. The tests overlap (``/league/x/matchups/3``
also contains ``/league/``), so the order of ``_CLASSIFIERS`` is what makes
a sub-resource win over its parent and must not be reshuffled.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

MINUTE = 60
HOUR = 60 * MINUTE


@dataclass(frozen=True)
class TTLPolicy:
    """Expiry policy for one response category.

    ``capacity`` is advisory: it is reported by ``ResultCache.stats()`` but no
    eviction is performed beyond TTL expiry.
    """
    category: str
    ttl: float  # seconds
    capacity: int

    @property
    def cacheable(self) -> bool:
        return self.ttl > 0


# Player directory lives in the reference cache, never here
REFERENCE_DATA = TTLPolicy("players", 0, 0)
DEFAULT_POLICY = TTLPolicy("default", 5 * MINUTE, 100)

POLICIES: Dict[str, TTLPolicy] = {
    # Global singleton data
    "nfl_state": TTLPolicy("nfl_state", 1 * HOUR, 1),

    # Per-user data
    "user": TTLPolicy("user", 30 * MINUTE, 1000),
    "user_leagues": TTLPolicy("user_leagues", 15 * MINUTE, 500),
    "user_drafts": TTLPolicy("user_drafts", 15 * MINUTE, 500),

    # League data; sub-resources that mutate often expire sooner
    "league": TTLPolicy("league", 10 * MINUTE, 1000),
    "league_users": TTLPolicy("league_users", 10 * MINUTE, 1000),
    "league_rosters": TTLPolicy("league_rosters", 5 * MINUTE, 1000),
    "league_drafts": TTLPolicy("league_drafts", 10 * MINUTE, 1000),
    "league_traded_picks": TTLPolicy("league_traded_picks", 10 * MINUTE, 1000),
    "league_playoff_bracket": TTLPolicy("league_playoff_bracket", 10 * MINUTE, 1000),
    "league_matchups": TTLPolicy("league_matchups", 2 * MINUTE, 2000),
    "league_transactions": TTLPolicy("league_transactions", 2 * MINUTE, 2000),

    # Draft data, live during a draft and static afterwards
    "draft": TTLPolicy("draft", 5 * MINUTE, 1000),
    "draft_picks": TTLPolicy("draft_picks", 2 * MINUTE, 1000),
    "draft_traded_picks": TTLPolicy("draft_traded_picks", 5 * MINUTE, 1000),

    # Aggregates
    "trending_players": TTLPolicy("trending_players", 5 * MINUTE, 100),
}


def is_reference_path(path: str) -> bool:
    """True for the bulk player directory (``/players/<sport>``), not trending."""
    return "/players/" in _with_slash(path) and "/trending" not in path


def reference_domain(path: str) -> Optional[str]:
    """Extract the sport code from a directory path, e.g. ``/players/nfl`` -> ``nfl``."""
    if not is_reference_path(path):
        return None
    parts = [p for p in path.split("?")[0].split("/") if p]
    try:
        return parts[parts.index("players") + 1]
    except (ValueError, IndexError):
        return None


def _with_slash(path: str) -> str:
    # "/players/nfl" must match "/players/" just like "/players/nfl/..."
    return path if path.endswith("/") else path + "/"


def _league(*needles: str) -> Callable[[str], bool]:
    return lambda p: "/league/" in p and all(n in p for n in needles)


def _draft(*needles: str) -> Callable[[str], bool]:
    return lambda p: "/draft/" in p and all(n in p for n in needles)


# Ordered most specific first; evaluation stops at the first match.
_CLASSIFIERS: List[Tuple[str, Callable[[str], bool]]] = [
    ("players", is_reference_path),
    ("nfl_state", lambda p: "/state/" in p),
    ("user_leagues", lambda p: p.startswith("/user/") and "/leagues/" in p),
    ("user_drafts", lambda p: p.startswith("/user/") and "/drafts/" in p),
    ("user", lambda p: p.startswith("/user/")),
    ("league_matchups", _league("/matchups/")),
    ("league_transactions", _league("/transactions")),
    ("league_rosters", _league("/rosters")),
    ("league_users", _league("/users")),
    ("league_drafts", _league("/drafts")),
    ("league_traded_picks", _league("/traded_picks")),
    ("league_playoff_bracket", _league("_bracket")),
    ("league", _league()),
    ("draft_picks", _draft("/picks")),
    ("draft_traded_picks", _draft("/traded_picks")),
    ("draft", _draft()),
    ("trending_players", lambda p: "/trending" in p),
]


def classify_path(path: str) -> str:
    """Return the category name for a request path ("default" if none matches)."""
    # "/state/nfl" style paths always carry a trailing segment; normalise the
    # bare forms so "/league/123" and "/league/123/" classify identically.
    probe = _with_slash(path.split("?")[0])
    for category, matches in _CLASSIFIERS:
        if matches(probe):
            return category
    return DEFAULT_POLICY.category


def get_policy(path: str) -> TTLPolicy:
    """Look up the TTL policy for a request path."""
    category = classify_path(path)
    if category == REFERENCE_DATA.category:
        return REFERENCE_DATA
    return POLICIES.get(category, DEFAULT_POLICY)
