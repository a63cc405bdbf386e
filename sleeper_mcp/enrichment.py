"""
Player enrichment for Sleeper API responses.

Sleeper responses reference players only by id (roster ``players`` lists,
matchup ``players_points`` maps, transaction ``adds``/``drops``, pick
``player_id`` fields). This module walks any response, collects every player
id it can find in one deduplicated batch, resolves the batch against the
player directory and returns a copy with a ``*_enriched`` sibling next to
each matched field. The original fields are never modified.

Field detection is data driven: the field-name sets and the identifier rule
below are the whole policy and are tested on their own.
"""

import enum
import logging
import re
from dataclasses import dataclass, field, asdict
from functools import singledispatch
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .errors import EnrichmentFailure, ReferenceUnavailable
from .metrics import get_metrics_collector

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Detection policy
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IdentifierRule:
    """Shape of a string that may be a player id: all digits, bounded length."""
    min_length: int = 2
    max_length: int = 7
    excluded_patterns: Tuple["re.Pattern[str]", ...] = ()

    def matches(self, value: Any) -> bool:
        if not isinstance(value, str):
            return False
        if not (self.min_length <= len(value) <= self.max_length) or not value.isdigit():
            return False
        return not any(p.fullmatch(value) for p in self.excluded_patterns)


EXCLUDED_VALUE_PATTERNS = (
    re.compile(r"\d"),          # roster / slot indices
    re.compile(r"0+"),          # placeholder ids
    re.compile(r"[A-Z]{2,3}"),  # team codes (DEF entries)
)

IDENTIFIER_RULE = IdentifierRule(excluded_patterns=EXCLUDED_VALUE_PATTERNS)

# Lists of player ids
LIST_FIELDS: FrozenSet[str] = frozenset({"players", "starters", "reserve", "taxi"})

# Mappings keyed by player id -> name given to the scalar payload in the enriched entry
MAPPING_FIELDS: Dict[str, str] = {
    "players_points": "points",
    "adds": "roster_id",
    "drops": "roster_id",
}

# Mapping fields whose enriched list is ordered by descending payload
SCORED_MAPPING_FIELDS: FrozenSet[str] = frozenset({"players_points"})

# A single player id
SINGLE_FIELDS: FrozenSet[str] = frozenset({"player_id"})
SINGLE_FIELD_SUFFIX = "_player_id"

# Ids of other entities; never enriched regardless of value shape
EXCLUDED_FIELDS: FrozenSet[str] = frozenset({
    "owner_id", "user_id", "roster_id", "league_id", "draft_id",
    "previous_league_id", "transaction_id", "matchup_id", "creator",
    "picked_by", "co_owners", "roster_ids", "consenter_ids", "keeper_ids",
    "espn_id", "yahoo_id", "rotowire_id", "rotoworld_id", "sportradar_id",
    "stats_id", "fantasy_data_id", "gsis_id", "swish_id", "pandascore_id",
})

ENRICHED_SUFFIX = "_enriched"


class FieldShape(enum.Enum):
    LIST = "list"
    MAPPING = "mapping"
    SINGLE = "single"


def classify_field(name: str, value: Any) -> Optional[FieldShape]:
    """Return how ``name: value`` carries player ids, or None if it does not."""
    if name in EXCLUDED_FIELDS or name.endswith(ENRICHED_SUFFIX):
        return None
    if name in LIST_FIELDS and isinstance(value, list):
        return FieldShape.LIST
    if name in MAPPING_FIELDS and isinstance(value, dict):
        return FieldShape.MAPPING
    if (name in SINGLE_FIELDS or name.endswith(SINGLE_FIELD_SUFFIX)) and isinstance(value, str):
        return FieldShape.SINGLE
    return None


def field_identifiers(shape: FieldShape, value: Any) -> List[str]:
    """Identifier-looking ids held by a classified field, in field order."""
    if shape is FieldShape.LIST:
        return [v for v in value if IDENTIFIER_RULE.matches(v)]
    if shape is FieldShape.MAPPING:
        return [k for k in value if IDENTIFIER_RULE.matches(k)]
    return [value] if IDENTIFIER_RULE.matches(value) else []


def enriched_field_name(name: str, shape: FieldShape) -> str:
    if shape is FieldShape.SINGLE and name.endswith("_id"):
        return name[:-3] + ENRICHED_SUFFIX
    return name + ENRICHED_SUFFIX


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

INJURY_WARNINGS = {
    "Questionable": "questionable",
    "Doubtful": "doubtful",
    "Out": "out",
    "IR": "injured_reserve",
    "PUP": "physically_unable",
    "Sus": "suspended",
    "COV": "illness_list",
    "NA": "not_active",
    "DNR": "did_not_report",
}

STATUS_WARNINGS = {
    "Inactive": "inactive",
    "Injured Reserve": "injured_reserve",
    "Practice Squad": "practice_squad",
    "Physically Unable to Perform": "physically_unable",
    "Non Football Injury": "not_active",
}


@dataclass
class EntityRecord:
    """Normalized subset of a Sleeper player object."""
    player_id: str
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    position: Optional[str] = None
    fantasy_positions: List[str] = field(default_factory=list)
    team: Optional[str] = None
    status: Optional[str] = None
    injury_status: Optional[str] = None
    injury_body_part: Optional[str] = None
    age: Optional[int] = None
    years_exp: Optional[int] = None
    number: Optional[int] = None

    @classmethod
    def from_upstream(cls, player_id: str, raw: Dict[str, Any]) -> "EntityRecord":
        first = raw.get("first_name")
        last = raw.get("last_name")
        full_name = raw.get("full_name") or " ".join(p for p in (first, last) if p) or None
        return cls(
            player_id=str(raw.get("player_id") or player_id),
            full_name=full_name,
            first_name=first,
            last_name=last,
            position=raw.get("position"),
            fantasy_positions=list(raw.get("fantasy_positions") or []),
            team=raw.get("team"),
            status=raw.get("status"),
            injury_status=raw.get("injury_status"),
            injury_body_part=raw.get("injury_body_part"),
            age=raw.get("age"),
            years_exp=raw.get("years_exp"),
            number=raw.get("number"),
        )

    def warnings(self) -> List[str]:
        """Roster warnings derived from the status fields at read time."""
        flags: List[str] = []
        if self.injury_status in INJURY_WARNINGS:
            flags.append(INJURY_WARNINGS[self.injury_status])
        if self.status in STATUS_WARNINGS:
            flags.append(STATUS_WARNINGS[self.status])
        if not self.team and self.position != "DEF":
            flags.append("free_agent")
        return list(dict.fromkeys(flags))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["warnings"] = self.warnings()
        return data


@dataclass
class EnrichmentContext:
    """Ids found in one response and what they resolved to; never shared across calls."""
    domain: str
    identifiers: Set[str] = field(default_factory=set)
    records: Dict[str, EntityRecord] = field(default_factory=dict)

    def record_dict(self, player_id: str) -> Optional[Dict[str, Any]]:
        record = self.records.get(player_id)
        return record.to_dict() if record else None


# ---------------------------------------------------------------------------
# Discovery pass
# ---------------------------------------------------------------------------

@singledispatch
def discover(node: Any, found: Set[str]) -> Set[str]:
    """Collect identifier-looking player ids anywhere under ``node`` into ``found``."""
    return found


@discover.register
def _discover_object(node: dict, found: Set[str]) -> Set[str]:
    for name, value in node.items():
        shape = classify_field(name, value)
        if shape is not None:
            found.update(field_identifiers(shape, value))
        discover(value, found)
    return found


@discover.register
def _discover_array(node: list, found: Set[str]) -> Set[str]:
    for item in node:
        discover(item, found)
    return found


# ---------------------------------------------------------------------------
# Rewrite pass
# ---------------------------------------------------------------------------

def _enrich_field(name: str, shape: FieldShape, value: Any, context: EnrichmentContext) -> Any:
    ids = field_identifiers(shape, value)
    if shape is FieldShape.SINGLE:
        return context.record_dict(ids[0])

    entries = []
    for pid in ids:
        record = context.record_dict(pid)
        if record is None:
            continue
        if shape is FieldShape.MAPPING:
            record[MAPPING_FIELDS[name]] = value[pid]
        entries.append(record)

    if shape is FieldShape.MAPPING and name in SCORED_MAPPING_FIELDS:
        payload_key = MAPPING_FIELDS[name]
        entries.sort(key=lambda e: e[payload_key] if isinstance(e[payload_key], (int, float)) else float("-inf"),
                     reverse=True)
    return entries


@singledispatch
def rewrite(node: Any, context: EnrichmentContext) -> Any:
    """Return a copy of ``node`` with ``*_enriched`` siblings attached."""
    return node


@rewrite.register
def _rewrite_object(node: dict, context: EnrichmentContext) -> dict:
    out = {}
    for name, value in node.items():
        out[name] = rewrite(value, context)
        shape = classify_field(name, value)
        if shape is None or not field_identifiers(shape, value):
            continue
        target = enriched_field_name(name, shape)
        if target in node:
            continue
        out[target] = _enrich_field(name, shape, value, context)
    return out


@rewrite.register
def _rewrite_array(node: list, context: EnrichmentContext) -> list:
    return [rewrite(item, context) for item in node]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

DirectoryResolver = Callable[[str], Awaitable[Optional[Dict[str, Dict[str, Any]]]]]


class EnrichmentEngine:
    """
    Best-effort response enrichment.

    ``directory_resolver(domain)`` returns the player directory for a sport
    (or None); it may raise ``ReferenceUnavailable``. Any failure leaves the
    response exactly as it was.
    """

    def __init__(self, directory_resolver: DirectoryResolver, enabled: bool = True):
        self.directory_resolver = directory_resolver
        self.enabled = enabled
        self._metrics = get_metrics_collector()

    async def resolve(self, identifiers: Iterable[str], domain: str) -> Dict[str, EntityRecord]:
        """Batch-resolve ids against one directory lookup; unknown ids are left out."""
        directory = await self.directory_resolver(domain)
        if directory is None:
            raise ReferenceUnavailable(domain)
        records = {}
        for pid in identifiers:
            raw = directory.get(pid)
            if isinstance(raw, dict):
                records[pid] = EntityRecord.from_upstream(pid, raw)
        return records

    async def enrich(self, response: Any, domain: str = "nfl") -> Any:
        if not self.enabled:
            return response

        context = EnrichmentContext(domain=domain)
        try:
            discover(response, context.identifiers)
            if not context.identifiers:
                return response

            try:
                context.records = await self.resolve(context.identifiers, domain)
            except ReferenceUnavailable as e:
                logger.warning(f"Enrichment skipped: {e.message}")
                self._metrics.increment_counter("enrichment.degraded", reason="reference_unavailable")
                return response
            except Exception as e:
                raise EnrichmentFailure(f"player lookup failed: {e}") from e

            enriched = rewrite(response, context)
            logger.debug(
                f"Enriched response: {len(context.records)}/{len(context.identifiers)} player ids resolved ({domain})"
            )
            return enriched

        except Exception as e:
            logger.warning(f"Enrichment failed, returning unenriched response: {e}")
            self._metrics.increment_counter("enrichment.degraded", reason="failure")
            return response
