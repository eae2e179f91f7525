"""Pure rollup functions for the stat aggregation hierarchy.

Hierarchy:
    Player: days -> weeks -> splits (per team) and totals, by season type
    Team:   player days -> team days -> team weeks -> team seasons

Counting stats are summed across each group. ``GAA`` and ``SVP`` are never
summed or averaged; they are recomputed from the summed goals-against,
time-on-ice, saves, and shots-against. Without ice time, GAA falls back to
goalie starts; team records rolled up from team records have no goalie
start count and get a GAA of 0 instead. For edges that read individual
player days, skater and goalie stats only count from days the player was
started (``GS`` = 1) and only from the matching position family.

Example:
    >>> from gshl_rank.aggregation.config import PLAYER_DAY_TO_WEEK
    >>> from gshl_rank.aggregation.rollup import aggregate, filter_active_days
    >>> weeks = aggregate(filter_active_days(player_days), PLAYER_DAY_TO_WEEK, weeks_by_id)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from gshl_rank.aggregation.config import (
    GAA_PRECISION,
    GOALIE_FIELDS,
    ROSTER_FIELDS,
    SKATER_FIELDS,
    SVP_PRECISION,
    AggregationConfig,
)
from gshl_rank.ranking.categories import safe_number
from gshl_rank.ranking.classification import normalize_phase, week_type_to_phase
from gshl_rank.types import EntityType, PositionGroup, Record, SeasonPhase

logger = logging.getLogger(__name__)

# week id -> week record ({"id", "seasonId", "weekType", "startDate", "endDate"})
WeekMetadata = Mapping[str, Mapping[str, Any]]


# =============================================================================
# Field helpers
# =============================================================================


def _text(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()[:10]
    return str(value).strip()


def _number(value: float) -> int | float:
    """Integral sums come back as ints so stored records stay readable."""
    if float(value).is_integer():
        return int(value)
    return round(value, 6)


def was_started(record: Mapping[str, Any]) -> bool:
    """Whether the player was in the starting lineup that day."""
    return safe_number(record.get("GS")) == 1


def is_goalie(record: Mapping[str, Any]) -> bool:
    return _text(record.get("posGroup")).upper() == PositionGroup.G.value


def unique_strings(values: Iterable[Any]) -> list[str]:
    """Flatten comma-separated strings and lists into unique values, first seen first."""
    seen: dict[str, None] = {}
    for value in values:
        if not value:
            continue
        parts = value if isinstance(value, (list, tuple)) else str(value).split(",")
        for part in parts:
            text = str(part).strip()
            if text:
                seen.setdefault(text, None)
    return list(seen)


def compute_gaa(ga: float, toi: float, gs: float) -> float:
    """Goals-against average per 60 minutes of ice time.

    Falls back to goals against per start when no ice time is recorded.
    """
    if toi > 0:
        return round(ga * 60 / toi, GAA_PRECISION)
    if gs > 0:
        return round(ga / gs, GAA_PRECISION)
    return 0.0


def compute_svp(sv: float, sa: float) -> float:
    """Save percentage; 0 when no shots were faced."""
    if sa > 0:
        return round(sv / sa, SVP_PRECISION)
    return 0.0


def season_type_for(
    record: Mapping[str, Any], week_metadata: WeekMetadata | None = None
) -> SeasonPhase:
    """Season type of a record, preferring its week's schedule type."""
    week_id = _text(record.get("weekId"))
    if week_metadata and week_id in week_metadata:
        return week_type_to_phase(week_metadata[week_id].get("weekType"))
    return normalize_phase(record.get("seasonType")) or SeasonPhase.REGULAR_SEASON


def filter_active_days(records: Iterable[Mapping[str, Any]]) -> list[Record]:
    """Drop player days without a game played.

    Applied once before any rollup; the edges themselves assume active days.
    """
    return [dict(record) for record in records if safe_number(record.get("GP")) > 0]


# =============================================================================
# Aggregation
# =============================================================================


def _group_key(record: Mapping[str, Any], config: AggregationConfig) -> tuple[str, ...]:
    return tuple(_text(record.get(field)) for field in config.group_by)


def _sum(rows: Sequence[Mapping[str, Any]], field: str) -> float:
    return sum(safe_number(row.get(field)) for row in rows)


def _combine(
    key: tuple[str, ...], rows: Sequence[Mapping[str, Any]], config: AggregationConfig
) -> Record:
    first = rows[0]
    record: Record = dict(zip(config.group_by, key))
    record.setdefault("seasonId", _text(first.get("seasonId")))
    if "seasonType" not in record and _text(first.get("seasonType")):
        record["seasonType"] = _text(first.get("seasonType"))
    if config.target_model == "TeamDay":
        record["weekId"] = _text(first.get("weekId"))

    if config.count_dates:
        record["days"] = len({_text(row.get("date")) for row in rows if _text(row.get("date"))})
    elif any(row.get("days") not in (None, "") for row in rows):
        record["days"] = _number(_sum(rows, "days"))

    player_target = config.entity_type is EntityType.PLAYER
    goalie_target = False
    if player_target:
        pos_group = _text(first.get("posGroup")).upper()
        goalie_target = pos_group == PositionGroup.G.value
        record["posGroup"] = pos_group
        record["nhlPos"] = unique_strings(row.get("nhlPos") for row in rows)
        record["nhlTeam"] = ",".join(unique_strings(row.get("nhlTeam") for row in rows))
        if config.collect_team_ids:
            record["gshlTeamIds"] = unique_strings(
                row.get("gshlTeamIds") or row.get("gshlTeamId") for row in rows
            )

    for field in ROSTER_FIELDS:
        record[field] = _number(_sum(rows, field))

    counted = [row for row in rows if was_started(row)] if config.player_sourced else list(rows)
    if config.player_sourced or player_target:
        skater_rows = [row for row in counted if not is_goalie(row)]
        goalie_rows = [row for row in counted if is_goalie(row)]
    else:
        skater_rows = goalie_rows = counted

    skater_target = player_target and not goalie_target
    for field in SKATER_FIELDS:
        record[field] = None if goalie_target else _number(_sum(skater_rows, field))
    for field in GOALIE_FIELDS:
        record[field] = None if skater_target else _number(_sum(goalie_rows, field))

    if skater_target:
        record["GAA"] = None
        record["SVP"] = None
    else:
        # Roster GS on team records also counts skater starts.
        if player_target:
            goalie_starts = safe_number(record["GS"])
        elif config.player_sourced:
            goalie_starts = _sum(goalie_rows, "GS")
        else:
            goalie_starts = 0.0
        record["GAA"] = compute_gaa(
            safe_number(record["GA"]), safe_number(record["TOI"]), goalie_starts
        )
        record["SVP"] = compute_svp(safe_number(record["SV"]), safe_number(record["SA"]))

    return record


def aggregate(
    source_records: Iterable[Mapping[str, Any]],
    config: AggregationConfig,
    week_metadata: WeekMetadata | None = None,
) -> list[Record]:
    """Roll source records up one level of the hierarchy.

    Args:
        source_records: Records of ``config.source_model``.
        config: Edge definition.
        week_metadata: Week id to week record, used to derive season type.

    Returns:
        Target records, one per group, ordered by grouping key. Records
        missing any grouping field are skipped.
    """
    groups: dict[tuple[str, ...], list[Record]] = {}
    skipped = 0
    for source in source_records:
        row = dict(source)
        if config.season_type_from_week:
            row["seasonType"] = season_type_for(row, week_metadata).value
        key = _group_key(row, config)
        if not all(key):
            skipped += 1
            continue
        groups.setdefault(key, []).append(row)

    if skipped:
        logger.warning("%s: skipped %d records missing grouping fields", config.name, skipped)

    results = [_combine(key, groups[key], config) for key in sorted(groups)]
    logger.debug("%s: %d records -> %d groups", config.name, sum(map(len, groups.values())), len(results))
    return results


def summarize(
    inputs: Sequence[Mapping[str, Any]],
    outputs: Sequence[Mapping[str, Any]],
    grouping_fields: Sequence[str],
) -> dict[str, Any]:
    """Input and output counts for one rollup.

    Returns:
        Dict with ``input`` (total records, unique groups, and a
        ``unique<field>`` count per grouping field) and ``output`` (total
        records and average inputs per output).
    """
    summary: dict[str, Any] = {
        "input": {"totalRecords": len(inputs), "uniqueGroups": len(outputs)},
        "output": {"totalRecords": len(outputs)},
    }
    for field in grouping_fields:
        summary["input"][f"unique{field}"] = len({_text(row.get(field)) for row in inputs})
    if outputs:
        summary["output"]["averageInputPerOutput"] = round(len(inputs) / len(outputs), 2)
    return summary
