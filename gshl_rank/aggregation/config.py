"""Stat field groups and rollup edge definitions.

Each edge of the aggregation hierarchy (day to week, week to split, ...) is
described by an ``AggregationConfig``: the record kinds it reads and writes,
the target's grouping fields, and whether started-only gating applies.

Example:
    >>> from gshl_rank.aggregation.config import PLAYER_DAY_TO_WEEK
    >>> PLAYER_DAY_TO_WEEK.group_by
    ('playerId', 'weekId', 'gshlTeamId')
"""

from __future__ import annotations

from dataclasses import dataclass

from gshl_rank.types import EntityType

# Roster bookkeeping; always summed across every day in the group
ROSTER_FIELDS: tuple[str, ...] = ("GP", "MG", "IR", "IRplus", "GS", "ADD", "MS", "BS")

SKATER_FIELDS: tuple[str, ...] = ("G", "A", "P", "PM", "PIM", "PPP", "SOG", "HIT", "BLK")

GOALIE_FIELDS: tuple[str, ...] = ("W", "GA", "SV", "SA", "SO", "TOI")

RATE_FIELDS: tuple[str, ...] = ("GAA", "SVP")

SUMMED_FIELDS: tuple[str, ...] = ROSTER_FIELDS + SKATER_FIELDS + GOALIE_FIELDS

GAA_PRECISION = 4
SVP_PRECISION = 6


@dataclass(frozen=True)
class AggregationConfig:
    """One edge of the rollup hierarchy.

    Attributes:
        name: Edge name used in logs.
        source_model: Record kind read.
        target_model: Record kind written.
        group_by: Target grouping fields, matching its natural key.
        entity_type: Whether targets are player or team records.
        player_sourced: Source rows are individual player days, so skater
            and goalie stats only count from started days.
        count_dates: Derive ``days`` from distinct dates instead of summing.
        season_type_from_week: Derive ``seasonType`` from week metadata.
        collect_team_ids: Carry the list of teams a player appeared for.
    """

    name: str
    source_model: str
    target_model: str
    group_by: tuple[str, ...]
    entity_type: EntityType
    player_sourced: bool = False
    count_dates: bool = False
    season_type_from_week: bool = False
    collect_team_ids: bool = False


PLAYER_DAY_TO_WEEK = AggregationConfig(
    name="playerDay->playerWeek",
    source_model="PlayerDay",
    target_model="PlayerWeek",
    group_by=("playerId", "weekId", "gshlTeamId"),
    entity_type=EntityType.PLAYER,
    player_sourced=True,
    count_dates=True,
    season_type_from_week=True,
)

PLAYER_WEEK_TO_SPLIT = AggregationConfig(
    name="playerWeek->playerSplit",
    source_model="PlayerWeek",
    target_model="PlayerSplit",
    group_by=("playerId", "seasonId", "gshlTeamId", "seasonType"),
    entity_type=EntityType.PLAYER,
    season_type_from_week=True,
)

PLAYER_WEEK_TO_TOTAL = AggregationConfig(
    name="playerWeek->playerTotal",
    source_model="PlayerWeek",
    target_model="PlayerTotal",
    group_by=("playerId", "seasonId", "seasonType"),
    entity_type=EntityType.PLAYER,
    season_type_from_week=True,
    collect_team_ids=True,
)

PLAYER_DAY_TO_TEAM_DAY = AggregationConfig(
    name="playerDay->teamDay",
    source_model="PlayerDay",
    target_model="TeamDay",
    group_by=("gshlTeamId", "date"),
    entity_type=EntityType.TEAM,
    player_sourced=True,
)

TEAM_DAY_TO_WEEK = AggregationConfig(
    name="teamDay->teamWeek",
    source_model="TeamDay",
    target_model="TeamWeek",
    group_by=("gshlTeamId", "weekId"),
    entity_type=EntityType.TEAM,
    count_dates=True,
)

TEAM_WEEK_TO_SEASON = AggregationConfig(
    name="teamWeek->teamSeason",
    source_model="TeamWeek",
    target_model="TeamSeason",
    group_by=("gshlTeamId", "seasonId", "seasonType"),
    entity_type=EntityType.TEAM,
    season_type_from_week=True,
)

EDGES: dict[str, AggregationConfig] = {
    config.name: config
    for config in (
        PLAYER_DAY_TO_WEEK,
        PLAYER_WEEK_TO_SPLIT,
        PLAYER_WEEK_TO_TOTAL,
        PLAYER_DAY_TO_TEAM_DAY,
        TEAM_DAY_TO_WEEK,
        TEAM_WEEK_TO_SEASON,
    )
}
