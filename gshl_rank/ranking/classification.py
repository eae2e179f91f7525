"""Classification of raw stat lines into model keys.

Every stat line is assigned a ``Classification``: season, season phase,
aggregation level, position group, and entity type. The aggregation level is
inferred from which optional fields are populated, using an explicit ordered
rule table so each precedence step can be audited and tested on its own.

Example:
    >>> from gshl_rank.ranking.classification import classify, build_model_key
    >>> c = classify({"seasonId": "10", "playerId": "p1", "posGroup": "F",
    ...               "weekId": "3", "days": 7})
    >>> build_model_key(c)
    'RS:10:playerWeek:F'
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from gshl_rank.types import (
    AggregationLevel,
    EntityType,
    ModelKey,
    PositionGroup,
    SeasonPhase,
    StatLine,
)

# =============================================================================
# Constants
# =============================================================================

PHASE_ALIASES: dict[str, SeasonPhase] = {
    "REGULAR_SEASON": SeasonPhase.REGULAR_SEASON,
    "REGULAR": SeasonPhase.REGULAR_SEASON,
    "RS": SeasonPhase.REGULAR_SEASON,
    "PLAYOFFS": SeasonPhase.PLAYOFFS,
    "PO": SeasonPhase.PLAYOFFS,
    "LOSERS_TOURNAMENT": SeasonPhase.LOSERS_TOURNAMENT,
    "LOSERS": SeasonPhase.LOSERS_TOURNAMENT,
    "LT": SeasonPhase.LOSERS_TOURNAMENT,
}

WEEK_TYPE_PHASES: dict[str, SeasonPhase] = {
    "RS": SeasonPhase.REGULAR_SEASON,
    "CC": SeasonPhase.REGULAR_SEASON,
    "NC": SeasonPhase.REGULAR_SEASON,
    "PO": SeasonPhase.PLAYOFFS,
    "QF": SeasonPhase.PLAYOFFS,
    "SF": SeasonPhase.PLAYOFFS,
    "F": SeasonPhase.PLAYOFFS,
    "LT": SeasonPhase.LOSERS_TOURNAMENT,
}

PLAYER_POSITION_GROUPS = frozenset({PositionGroup.F, PositionGroup.D, PositionGroup.G})

# Fields that only appear on NHL reference rows
NHL_ONLY_FIELDS: tuple[str, ...] = (
    "seasonRating",
    "overallRating",
    "salary",
    "QS",
    "RBS",
)

WeekPhaseLookup = Mapping[str, Any]


@dataclass(frozen=True)
class Classification:
    """Derived identity of a stat line.

    Attributes:
        season_id: Season the line belongs to.
        season_phase: Regular season, playoffs, or losers tournament.
        aggregation_level: Granularity of the line.
        pos_group: Position group selecting relevant categories.
        entity_type: Player or team.
    """

    season_id: str
    season_phase: SeasonPhase
    aggregation_level: AggregationLevel
    pos_group: PositionGroup
    entity_type: EntityType


# =============================================================================
# Field helpers
# =============================================================================


def _has_value(line: StatLine, field: str) -> bool:
    value = line.get(field)
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def normalize_phase(value: Any) -> SeasonPhase | None:
    """Map a phase or season-type string to a canonical phase.

    Returns:
        Canonical phase, or None for blank or unrecognized input.
    """
    if isinstance(value, SeasonPhase):
        return value
    text = _text(value).upper()
    if not text:
        return None
    return PHASE_ALIASES.get(text)


def week_type_to_phase(week_type: Any) -> SeasonPhase:
    """Map a schedule week type (RS, CC, QF, ...) to its season phase."""
    return WEEK_TYPE_PHASES.get(_text(week_type).upper(), SeasonPhase.REGULAR_SEASON)


def resolve_season_phase(
    line: StatLine, week_phase_lookup: WeekPhaseLookup | None = None
) -> SeasonPhase:
    """Resolve the season phase of a line.

    Order: explicit ``seasonPhase``, then ``seasonType``, then the caller's
    week lookup by ``weekId``, then regular season.
    """
    for field in ("seasonPhase", "seasonType"):
        phase = normalize_phase(line.get(field))
        if phase is not None:
            return phase

    week_id = _text(line.get("weekId"))
    if week_id and week_phase_lookup:
        raw = week_phase_lookup.get(week_id)
        phase = normalize_phase(raw) or WEEK_TYPE_PHASES.get(_text(raw).upper())
        if phase is not None:
            return phase

    return SeasonPhase.REGULAR_SEASON


def resolve_entity_type(line: StatLine) -> EntityType:
    """Explicit ``entityType`` wins; otherwise infer from identifier fields."""
    explicit = _text(line.get("entityType")).lower()
    if explicit in (EntityType.PLAYER.value, EntityType.TEAM.value):
        return EntityType(explicit)
    if _has_value(line, "playerId"):
        return EntityType.PLAYER
    if _has_value(line, "gshlTeamId") or _has_value(line, "teamId"):
        return EntityType.TEAM
    return EntityType.PLAYER


def resolve_pos_group(line: StatLine, entity_type: EntityType) -> PositionGroup | None:
    """Normalize the position hint; teams are always ``TEAM``."""
    if entity_type is EntityType.TEAM:
        return PositionGroup.TEAM
    raw = line.get("posGroup")
    if not _has_value(line, "posGroup"):
        raw = line.get("POS_GROUP")
    text = _text(raw).upper()
    try:
        group = PositionGroup(text)
    except ValueError:
        return None
    return group if group in PLAYER_POSITION_GROUPS else None


# =============================================================================
# Aggregation level rules
# =============================================================================

LevelRule = tuple[str, Callable[[StatLine], bool], AggregationLevel]

PLAYER_LEVEL_RULES: tuple[LevelRule, ...] = (
    (
        "nhl-reference fields",
        lambda line: any(_has_value(line, f) for f in NHL_ONLY_FIELDS),
        AggregationLevel.PLAYER_NHL,
    ),
    ("date", lambda line: _has_value(line, "date"), AggregationLevel.PLAYER_DAY),
    (
        "week with days",
        lambda line: _has_value(line, "weekId") and _has_value(line, "days"),
        AggregationLevel.PLAYER_WEEK,
    ),
    (
        "season type with team",
        lambda line: _has_value(line, "seasonType") and _has_value(line, "gshlTeamId"),
        AggregationLevel.PLAYER_SPLIT,
    ),
    (
        "multi-team list",
        lambda line: bool(line.get("gshlTeamIds")),
        AggregationLevel.PLAYER_TOTAL,
    ),
    (
        "bare season type",
        lambda line: _has_value(line, "seasonType"),
        AggregationLevel.PLAYER_TOTAL,
    ),
)

TEAM_LEVEL_RULES: tuple[LevelRule, ...] = (
    ("date", lambda line: _has_value(line, "date"), AggregationLevel.TEAM_DAY),
    ("week", lambda line: _has_value(line, "weekId"), AggregationLevel.TEAM_WEEK),
)


def resolve_aggregation_level(line: StatLine, entity_type: EntityType) -> AggregationLevel:
    """Apply the ordered rule table; the first matching rule decides."""
    if entity_type is EntityType.TEAM:
        for _, predicate, level in TEAM_LEVEL_RULES:
            if predicate(line):
                return level
        return AggregationLevel.TEAM_SEASON

    for _, predicate, level in PLAYER_LEVEL_RULES:
        if predicate(line):
            return level
    if _has_value(line, "weekId"):
        return AggregationLevel.PLAYER_WEEK
    return AggregationLevel.PLAYER_DAY


# =============================================================================
# Public API
# =============================================================================


def classify(
    line: StatLine, week_phase_lookup: WeekPhaseLookup | None = None
) -> Classification | None:
    """Classify a stat line.

    Args:
        line: Raw stat record.
        week_phase_lookup: Optional week id to phase (or week type) map for
            lines that do not declare their phase.

    Returns:
        Classification, or None when the line has no season or no usable
        position group.
    """
    season_id = _text(line.get("seasonId"))
    if not season_id:
        return None

    entity_type = resolve_entity_type(line)
    pos_group = resolve_pos_group(line, entity_type)
    if pos_group is None:
        return None

    return Classification(
        season_id=season_id,
        season_phase=resolve_season_phase(line, week_phase_lookup),
        aggregation_level=resolve_aggregation_level(line, entity_type),
        pos_group=pos_group,
        entity_type=entity_type,
    )


def build_model_key(classification: Classification) -> ModelKey:
    """Join phase, season, level, and position into the model key."""
    return make_model_key(
        classification.season_phase,
        classification.season_id,
        classification.aggregation_level,
        classification.pos_group,
    )


def make_model_key(
    season_phase: SeasonPhase | str,
    season_id: str,
    aggregation_level: AggregationLevel | str,
    pos_group: PositionGroup | str,
) -> ModelKey:
    """Build a model key from its four parts."""
    return ":".join(
        (
            SeasonPhase(season_phase).value,
            str(season_id),
            AggregationLevel(aggregation_level).value,
            PositionGroup(pos_group).value,
        )
    )


def parse_model_key(key: ModelKey) -> tuple[SeasonPhase, str, AggregationLevel, PositionGroup]:
    """Split a model key back into its parts.

    Raises:
        ValueError: If the key does not have four recognised parts.
    """
    parts = key.split(":")
    if len(parts) != 4:
        raise ValueError(f"Malformed model key: {key!r}")
    phase, season_id, level, group = parts
    return SeasonPhase(phase), season_id, AggregationLevel(level), PositionGroup(group)
