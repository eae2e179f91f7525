"""Position weight calculation.

Weights express how much each stat category contributes to a position's
composite score. The base signal is the coefficient of variation of each
category in the training sample: categories with more relative spread are
more discriminating. The signal can be scaled by caller-supplied scarcity
and impact adjustments, is normalised so the relevant categories average 1,
then receives fixed position emphasis before being normalised again.

Example:
    >>> from gshl_rank.ranking.weights import compute_weights
    >>> weights = compute_weights(samples, "F")
    >>> sum(weights[s] for s in ("G", "A", "P", "PM", "PPP", "SOG", "HIT", "BLK"))
    8.0
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from gshl_rank.ranking.categories import ALL_STATS, ParsedStats, get_relevant_stats
from gshl_rank.ranking.distribution import correlation, mean, standard_deviation
from gshl_rank.types import CategoryWeights, PositionGroup

# =============================================================================
# Constants
# =============================================================================

MIN_CATEGORY_SIGNAL: float = 0.05

POSITION_ADJUSTMENTS: dict[PositionGroup, dict[str, float]] = {
    PositionGroup.F: {"G": 1.10, "PPP": 1.05},
    PositionGroup.D: {"BLK": 1.15, "HIT": 1.10},
    PositionGroup.G: {"SVP": 1.20, "GAA": 1.10, "W": 0.90},
    PositionGroup.TEAM: {},
}

# Position group -> category -> multiplier
AdjustmentMap = Mapping[str, Mapping[str, float]]


# =============================================================================
# Helpers
# =============================================================================


def base_weights(pos_group: PositionGroup | str) -> CategoryWeights:
    """Equal weights for relevant categories, zero elsewhere."""
    relevant = set(get_relevant_stats(pos_group))
    return {stat: 1.0 if stat in relevant else 0.0 for stat in ALL_STATS}


def _lookup_adjustment(
    adjustments: AdjustmentMap | None, pos_group: PositionGroup, stat: str
) -> float:
    if not adjustments:
        return 1.0
    per_position = adjustments.get(pos_group.value)
    if per_position is None:
        return 1.0
    return float(per_position.get(stat, 1.0))


def normalize_weights(
    weights: Mapping[str, float], pos_group: PositionGroup | str
) -> CategoryWeights:
    """Scale relevant weights to sum to their count; zero the rest.

    Args:
        weights: Raw per-category weights.
        pos_group: Position group whose relevant categories are kept.

    Returns:
        Weights over every tracked category.
    """
    relevant = get_relevant_stats(pos_group)
    total = sum(weights.get(stat, 0.0) for stat in relevant)
    factor = len(relevant) / total if total > 0 else 1.0

    normalized = {stat: 0.0 for stat in ALL_STATS}
    for stat in relevant:
        normalized[stat] = weights.get(stat, 0.0) * factor
    return normalized


def apply_position_adjustments(
    weights: Mapping[str, float], pos_group: PositionGroup | str
) -> CategoryWeights:
    """Apply the fixed position emphasis, then re-normalise."""
    group = PositionGroup(pos_group)
    adjusted = dict(weights)
    for stat, multiplier in POSITION_ADJUSTMENTS[group].items():
        adjusted[stat] = adjusted.get(stat, 0.0) * multiplier
    return normalize_weights(adjusted, group)


# =============================================================================
# Weight calculation
# =============================================================================


def compute_weights(
    samples: Sequence[ParsedStats],
    pos_group: PositionGroup | str,
    scarcity_weights: AdjustmentMap | None = None,
    category_impact_weights: AdjustmentMap | None = None,
) -> CategoryWeights:
    """Compute normalised, position-adjusted category weights.

    Args:
        samples: Parsed stat lines of one model key.
        pos_group: Position group of the sample.
        scarcity_weights: Optional position -> category multipliers.
        category_impact_weights: Optional position -> category multipliers.

    Returns:
        Weights over every tracked category. Relevant categories sum to their
        count and irrelevant ones are exactly 0. An empty sample yields the
        position-adjusted base weights.
    """
    group = PositionGroup(pos_group)
    relevant = get_relevant_stats(group)

    if not samples:
        return apply_position_adjustments(base_weights(group), group)

    raw: CategoryWeights = {}
    for stat in relevant:
        values = [sample.get(stat, 0.0) for sample in samples]
        avg = mean(values)
        if avg > 0:
            signal = max(MIN_CATEGORY_SIGNAL, standard_deviation(values) / avg)
        else:
            signal = MIN_CATEGORY_SIGNAL
        signal *= _lookup_adjustment(scarcity_weights, group, stat)
        signal *= _lookup_adjustment(category_impact_weights, group, stat)
        raw[stat] = signal

    return apply_position_adjustments(normalize_weights(raw, group), group)


def compute_adaptive_weights(
    samples: Sequence[ParsedStats],
    pos_group: PositionGroup | str,
    outcomes: Sequence[float] | None,
    scarcity_weights: AdjustmentMap | None = None,
    category_impact_weights: AdjustmentMap | None = None,
) -> CategoryWeights:
    """Scale weights by each category's correlation with an outcome signal.

    Each relevant weight is multiplied by ``0.5 + |pearson(category, outcome)|``
    and the result re-normalised. Without a usable outcome series the plain
    weights are returned.
    """
    group = PositionGroup(pos_group)
    weights = compute_weights(samples, group, scarcity_weights, category_impact_weights)
    if not outcomes or len(outcomes) != len(samples):
        return weights

    adjusted = dict(weights)
    for stat in get_relevant_stats(group):
        values = [sample.get(stat, 0.0) for sample in samples]
        adjusted[stat] *= 0.5 + abs(correlation(values, outcomes))
    return normalize_weights(adjusted, group)


def compute_global_weights(
    weight_sets: Sequence[Mapping[str, float]], pos_group: PositionGroup | str
) -> CategoryWeights:
    """Average per-key weights into one set for a position group.

    Falls back to base weights when the position has no trained keys.
    """
    if not weight_sets:
        return base_weights(pos_group)
    return {
        stat: mean([weights.get(stat, 0.0) for weights in weight_sets])
        for stat in ALL_STATS
    }


# =============================================================================
# Adjustment derivation
# =============================================================================


def _mean_one(values: Mapping[str, float]) -> dict[str, float]:
    positive = [v for v in values.values() if v > 0]
    if not positive:
        return {stat: 1.0 for stat in values}
    avg = sum(positive) / len(positive)
    return {stat: (v / avg if v > 0 else 1.0) for stat, v in values.items()}


def derive_scarcity_weights(
    samples_by_position: Mapping[str, Sequence[ParsedStats]],
) -> dict[str, dict[str, float]]:
    """Derive scarcity multipliers from a cross-entity sample.

    For each position, the coefficient of variation of every relevant
    category across the supplied lines, normalised to average 1. Typically
    computed from season totals and fed into day- or week-level training.
    """
    result: dict[str, dict[str, float]] = {}
    for group_name in sorted(samples_by_position):
        group = PositionGroup(group_name)
        samples = samples_by_position[group_name]
        cvs: dict[str, float] = {}
        for stat in get_relevant_stats(group):
            values = [sample.get(stat, 0.0) for sample in samples]
            avg = mean(values)
            cvs[stat] = standard_deviation(values) / avg if avg > 0 else 0.0
        result[group.value] = _mean_one(cvs)
    return result


def derive_category_impact_weights(
    samples_by_position: Mapping[str, Sequence[ParsedStats]],
) -> dict[str, dict[str, float]]:
    """Derive impact multipliers that equalise high- and low-count categories.

    For each position, the inverse of each relevant category's mean absolute
    value, normalised to average 1. Categories never recorded get 1.
    """
    result: dict[str, dict[str, float]] = {}
    for group_name in sorted(samples_by_position):
        group = PositionGroup(group_name)
        samples = samples_by_position[group_name]
        inverse: dict[str, float] = {}
        for stat in get_relevant_stats(group):
            magnitude = mean([abs(sample.get(stat, 0.0)) for sample in samples])
            inverse[stat] = 1.0 / magnitude if magnitude > 0 else 0.0
        result[group.value] = _mean_one(inverse)
    return result


__all__ = [
    "MIN_CATEGORY_SIGNAL",
    "POSITION_ADJUSTMENTS",
    "apply_position_adjustments",
    "base_weights",
    "compute_adaptive_weights",
    "compute_global_weights",
    "compute_weights",
    "derive_category_impact_weights",
    "derive_scarcity_weights",
    "normalize_weights",
]
