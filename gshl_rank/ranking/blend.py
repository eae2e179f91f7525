"""Aggregation blend weight derivation.

Callers that roll individual performances up into team-level views blend
the full population with its top-5/top-3/top-2 sub-populations. How much
to lean on the top performers depends on how spiky the underlying data is:
day-level composites are volatile, season totals are not. This module turns
the composite distributions of a trained model into one blend profile per
``(aggregationLevel, posGroup)``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from gshl_rank.ranking.model import BLEND_COMPONENTS, BlendWeightsMap, PositionSeasonModel
from gshl_rank.types import AggregationLevel

LOW_VARIANCE_PROFILE: dict[str, float] = {"all": 0.65, "top5": 0.20, "top3": 0.10, "top2": 0.05}
HIGH_VARIANCE_PROFILE: dict[str, float] = {"all": 0.25, "top5": 0.25, "top3": 0.25, "top2": 0.25}

AGGREGATION_LEVEL_SPIKE_BIAS: dict[AggregationLevel, float] = {
    AggregationLevel.PLAYER_DAY: 0.35,
    AggregationLevel.TEAM_DAY: 0.30,
    AggregationLevel.PLAYER_WEEK: 0.20,
    AggregationLevel.TEAM_WEEK: 0.15,
    AggregationLevel.PLAYER_SPLIT: -0.05,
    AggregationLevel.PLAYER_TOTAL: -0.10,
    AggregationLevel.PLAYER_NHL: -0.15,
    AggregationLevel.TEAM_SEASON: -0.15,
}

MAX_VOLATILITY: float = 5.0
DEFAULT_GROUP = "DEFAULT"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _lerp(start: float, end: float, t: float) -> float:
    return start + (end - start) * t


def interpolate_profiles(value: float) -> dict[str, float]:
    """Blend between the low- and high-variance profiles at ``value`` in [0, 1]."""
    return {
        name: _lerp(LOW_VARIANCE_PROFILE[name], HIGH_VARIANCE_PROFILE[name], value)
        for name in BLEND_COMPONENTS
    }


def normalize_blend(weights: Mapping[str, float]) -> dict[str, float]:
    """Normalise to sum 1, rounded to 4 places.

    Rounding residue is folded into the largest component so the rounded
    weights still sum to exactly 1.
    """
    total = sum(weights[name] for name in BLEND_COMPONENTS)
    if not total:
        return dict(LOW_VARIANCE_PROFILE)

    rounded = {name: round(weights[name] / total, 4) for name in BLEND_COMPONENTS}
    residue = 1 - sum(rounded.values())
    if abs(residue) > 0.0001:
        largest = max(BLEND_COMPONENTS, key=lambda name: rounded[name])
        rounded[largest] = round(rounded[largest] + residue, 4)
    return rounded


def _average(sets: list[dict[str, float]]) -> dict[str, float]:
    return {name: sum(s[name] for s in sets) / len(sets) for name in BLEND_COMPONENTS}


def derive_blend_weights(entries: Iterable[PositionSeasonModel]) -> BlendWeightsMap:
    """Derive blend profiles from trained units.

    Volatility per unit is ``min(|stdDev / mean|, 5)`` of its composite
    distribution, skipping units without a positive mean and spread. Units
    are pooled per ``(aggregationLevel, posGroup)`` weighted by sample size,
    min-max normalised across pools, biased by level, and clamped to [0, 1].

    Args:
        entries: Trained position-season models.

    Returns:
        Mapping of level to position group (plus ``DEFAULT``) to profile.
        Empty when no unit has usable volatility.
    """
    pooled: dict[tuple[str, str], list[float]] = {}
    for entry in entries:
        if entry.sample_size <= 0:
            continue
        dist = entry.composite_distribution
        if dist.mean <= 0 or dist.std_dev <= 0:
            continue
        volatility = min(abs(dist.std_dev / dist.mean), MAX_VOLATILITY)
        bucket = pooled.setdefault(
            (entry.aggregation_level.value, entry.pos_group.value), [0.0, 0.0]
        )
        bucket[0] += volatility * entry.sample_size
        bucket[1] += entry.sample_size

    summaries = {
        key: weighted / samples for key, (weighted, samples) in sorted(pooled.items())
    }
    if not summaries:
        return {}

    min_vol = min(summaries.values())
    max_vol = max(summaries.values())
    spread = (max_vol - min_vol) or 1.0

    result: BlendWeightsMap = {}
    for (level, group), avg_vol in summaries.items():
        bias = AGGREGATION_LEVEL_SPIKE_BIAS.get(AggregationLevel(level), 0.0)
        position = _clamp((avg_vol - min_vol) / spread + bias, 0.0, 1.0)
        result.setdefault(level, {})[group] = normalize_blend(interpolate_profiles(position))

    for groups in result.values():
        per_position = [blend for group, blend in sorted(groups.items()) if group != DEFAULT_GROUP]
        if per_position:
            groups[DEFAULT_GROUP] = normalize_blend(_average(per_position))

    return result
