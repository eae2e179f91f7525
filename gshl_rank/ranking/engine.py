"""Ranking engine: score single performances against a trained model.

Scoring a line classifies it, resolves the trained unit to compare against
through a fixed fallback chain, computes the weighted composite with the
unit's weights, and places that composite on the unit's composite
distribution. The result is a 0-100 score plus a per-category breakdown.

Fallback chain, first hit wins:
    1. The line's own phase and season.
    2. Regular season, the line's season.
    3. Regular season, the model's latest trained season.
    4. Regular season, the model's earliest trained season.
    5. Any key with the same aggregation level and position group, in
       sorted key order.

Example:
    >>> from gshl_rank.ranking.engine import rank, grade
    >>> result = rank({"seasonId": "10", "playerId": "p1", "posGroup": "F",
    ...                "date": "2024-01-05", "G": 2, "A": 1}, model)
    >>> grade(result.score)
    'Elite'
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np

from gshl_rank.logging import get_logger
from gshl_rank.ranking.categories import composite_score, get_relevant_stats, parse_stats
from gshl_rank.ranking.classification import (
    Classification,
    build_model_key,
    classify,
    make_model_key,
)
from gshl_rank.ranking.distribution import Distribution, estimate_percentile
from gshl_rank.ranking.model import PositionSeasonModel, RankingModel
from gshl_rank.ranking.weights import base_weights
from gshl_rank.types import (
    AggregationLevel,
    ClassificationError,
    ModelKey,
    ModelResolutionError,
    PositionGroup,
    SeasonPhase,
    StatLine,
)

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

# Goalie day lines compress toward the middle of their distribution
GOALIE_PLAYER_DAY_BOOST: float = 4.05

SCORE_GRADES: tuple[tuple[float, float, str], ...] = (
    (95.0, 1000.0, "Elite"),
    (90.0, 95.0, "Excellent"),
    (80.0, 90.0, "Great"),
    (70.0, 80.0, "Good"),
    (60.0, 70.0, "Above Average"),
    (50.0, 60.0, "Average"),
    (40.0, 50.0, "Below Average"),
    (30.0, 40.0, "Poor"),
    (20.0, 30.0, "Very Poor"),
    (0.0, 20.0, "Minimal"),
)

TIE_EPSILON: float = 0.001

GLOBAL_FALLBACK_KEY = "GLOBAL"


# =============================================================================
# Data Containers
# =============================================================================


@dataclass(frozen=True)
class BreakdownEntry:
    """Contribution of one category to a ranking.

    Attributes:
        category: Stat category.
        value: Raw value on the line.
        percentile: Value's percentile within the category distribution.
        weight: Weight applied to the category.
    """

    category: str
    value: float
    percentile: float
    weight: float


@dataclass(frozen=True)
class RankingResult:
    """Score of one stat line.

    Attributes:
        score: Percentile clipped to [0, 100].
        percentile: Unclipped percentile after adjustments.
        model_key: Key of the unit scored against.
        season_id: Season of that unit.
        aggregation_level: Level of that unit.
        pos_group: Position group of that unit.
        season_phase: Phase of that unit.
        breakdown: Per-category detail for relevant categories.
        composite: Weighted composite value.
        used_global_weights: True when scored with global fallback weights.
    """

    score: float
    percentile: float
    model_key: ModelKey
    season_id: str
    aggregation_level: AggregationLevel
    pos_group: PositionGroup
    season_phase: SeasonPhase
    breakdown: list[BreakdownEntry] = field(default_factory=list)
    composite: float = 0.0
    used_global_weights: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "percentile": self.percentile,
            "modelKey": self.model_key,
            "seasonId": self.season_id,
            "aggregationLevel": self.aggregation_level.value,
            "posGroup": self.pos_group.value,
            "seasonPhase": self.season_phase.value,
            "composite": self.composite,
            "usedGlobalWeights": self.used_global_weights,
            "breakdown": [
                {
                    "category": entry.category,
                    "value": entry.value,
                    "percentile": entry.percentile,
                    "weight": entry.weight,
                }
                for entry in self.breakdown
            ],
        }


@dataclass(frozen=True)
class Comparison:
    """Outcome of comparing two rankings.

    Attributes:
        score_difference: ``a.score - b.score``; 0 on a tie.
        better: ``"a"``, ``"b"``, or ``"tie"``.
    """

    score_difference: float
    better: Literal["a", "b", "tie"]


# =============================================================================
# Model resolution
# =============================================================================


def resolve_model(
    classification: Classification, model: RankingModel
) -> tuple[ModelKey, PositionSeasonModel] | None:
    """Walk the fallback chain for a classified line.

    Returns:
        Tuple of (key, unit), or None when nothing matches.
    """
    regular = SeasonPhase.REGULAR_SEASON
    candidates = (
        (classification.season_phase, classification.season_id),
        (regular, classification.season_id),
        (regular, model.season_range.latest or classification.season_id),
        (regular, model.season_range.earliest or classification.season_id),
    )
    for phase, season_id in candidates:
        key = make_model_key(
            phase,
            season_id,
            classification.aggregation_level,
            classification.pos_group,
        )
        entry = model.models.get(key)
        if entry is not None:
            return key, entry

    for key in sorted(model.models):
        entry = model.models[key]
        if (
            entry.aggregation_level is classification.aggregation_level
            and entry.pos_group is classification.pos_group
        ):
            return key, entry

    return None


def _global_entry(classification: Classification, model: RankingModel) -> PositionSeasonModel:
    group = classification.pos_group
    weights = model.global_weights.get(group.value) or base_weights(group)
    return PositionSeasonModel(
        season_id=classification.season_id,
        season_phase=classification.season_phase,
        aggregation_level=classification.aggregation_level,
        pos_group=group,
        entity_type=classification.entity_type,
        sample_size=0,
        weights=dict(weights),
        distributions={},
        composite_distribution=Distribution(),
    )


# =============================================================================
# Scoring
# =============================================================================


def goalie_day_adjustment(
    percentile: float, classification: Classification, entry: PositionSeasonModel
) -> float:
    """Add the flat goalie day-level boost where it applies."""
    is_goalie_day = classification.pos_group is PositionGroup.G and (
        classification.aggregation_level is AggregationLevel.PLAYER_DAY
        or entry.aggregation_level is AggregationLevel.PLAYER_DAY
    )
    if is_goalie_day:
        return percentile + GOALIE_PLAYER_DAY_BOOST
    return percentile


def build_breakdown(stats: Mapping[str, float], entry: PositionSeasonModel) -> list[BreakdownEntry]:
    """Per-category detail for the unit's relevant categories."""
    return [
        BreakdownEntry(
            category=stat,
            value=stats.get(stat, 0.0),
            percentile=estimate_percentile(stats.get(stat, 0.0), entry.distributions.get(stat)),
            weight=entry.weights.get(stat, 0.0),
        )
        for stat in get_relevant_stats(entry.pos_group)
    ]


def rank(
    line: StatLine,
    model: RankingModel,
    week_phase_lookup: Mapping[str, Any] | None = None,
    use_global_fallback: bool = False,
) -> RankingResult:
    """Score one stat line.

    Args:
        line: Raw stat line.
        model: Trained ranking model.
        week_phase_lookup: Optional week id -> phase map for classification.
        use_global_fallback: Score with global weights when no unit resolves.

    Returns:
        RankingResult with score in [0, 100].

    Raises:
        ClassificationError: If the line cannot be classified.
        ModelResolutionError: If no unit resolves and global fallback is off.
    """
    classification = classify(line, week_phase_lookup)
    if classification is None:
        raise ClassificationError("Unable to classify stat line for ranking")

    resolved = resolve_model(classification, model)
    used_global = False
    if resolved is None:
        if not use_global_fallback:
            raise ModelResolutionError(
                f"No matching ranking model for {build_model_key(classification)}"
            )
        key, entry = GLOBAL_FALLBACK_KEY, _global_entry(classification, model)
        used_global = True
    else:
        key, entry = resolved

    stats = parse_stats(line)
    composite = composite_score(stats, entry.weights)
    # An empty composite distribution has no spread and places every line at 50
    percentile = estimate_percentile(composite, entry.composite_distribution)
    percentile = goalie_day_adjustment(percentile, classification, entry)

    return RankingResult(
        score=float(np.clip(percentile, 0.0, 100.0)),
        percentile=percentile,
        model_key=key,
        season_id=entry.season_id,
        aggregation_level=entry.aggregation_level,
        pos_group=entry.pos_group,
        season_phase=entry.season_phase,
        breakdown=build_breakdown(stats, entry),
        composite=composite,
        used_global_weights=used_global,
    )


def rank_many(
    lines: Iterable[StatLine],
    model: RankingModel,
    week_phase_lookup: Mapping[str, Any] | None = None,
    use_global_fallback: bool = False,
    skip_failures: bool = False,
) -> list[RankingResult | None]:
    """Score lines independently.

    With ``skip_failures`` an unscorable line yields None instead of raising.
    """
    results: list[RankingResult | None] = []
    for line in lines:
        try:
            results.append(rank(line, model, week_phase_lookup, use_global_fallback))
        except (ClassificationError, ModelResolutionError) as e:
            if not skip_failures:
                raise
            logger.debug("Skipping unscorable line: {}", e)
            results.append(None)
    return results


def grade(score: float) -> str:
    """Map a score to its label; the score is clipped to [0, 120] first."""
    normalized = float(np.clip(score, 0.0, 120.0))
    for low, high, label in SCORE_GRADES:
        if low <= normalized < high:
            return label
    return "Unknown"


def compare(a: RankingResult, b: RankingResult) -> Comparison:
    """Compare two rankings by score with a small tie tolerance."""
    diff = a.score - b.score
    if abs(diff) < TIE_EPSILON:
        return Comparison(score_difference=0.0, better="tie")
    return Comparison(score_difference=diff, better="a" if diff > 0 else "b")
