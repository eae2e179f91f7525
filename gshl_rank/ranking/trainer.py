"""Offline training of the ranking model.

Training groups every classifiable stat line by its model key, drops groups
smaller than ``min_sample_size``, and for each retained group computes
category weights, per-category distributions, and an outlier-trimmed
distribution of the weighted composite score. Groups are processed in
sorted key order and samples are sorted inside each group, so the same set
of lines yields the same model whatever order it arrives in.

Example:
    >>> from gshl_rank.ranking.trainer import TrainingConfig, train
    >>> model = train(lines, TrainingConfig(min_sample_size=50))
    >>> sorted(model.models)[:1]
    ['RS:10:playerDay:F']
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from gshl_rank.config import get_settings
from gshl_rank.logging import get_logger
from gshl_rank.ranking.blend import derive_blend_weights
from gshl_rank.ranking.categories import (
    ALL_STATS,
    ParsedStats,
    composite_score,
    natural_sort_key,
    parse_stats,
)
from gshl_rank.ranking.classification import Classification, build_model_key, classify
from gshl_rank.ranking.distribution import (
    build_distribution,
    build_trimmed_distribution,
    exponential_smoothing,
)
from gshl_rank.ranking.model import (
    MODEL_FORMAT_VERSION,
    PositionSeasonModel,
    RankingModel,
    SeasonRange,
)
from gshl_rank.ranking.weights import (
    AdjustmentMap,
    compute_adaptive_weights,
    compute_global_weights,
    compute_weights,
)
from gshl_rank.types import (
    AggregationLevel,
    CategoryWeights,
    ModelKey,
    PositionGroup,
    SeasonPhase,
    StatLine,
)

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_MIN_SAMPLE_SIZE: int = 50
DEFAULT_OUTLIER_THRESHOLD: float = 4.0
DEFAULT_SMOOTHING_FACTOR: float = 0.3
DEFAULT_OUTCOME_FIELD: str = "outcome"


# =============================================================================
# Data Containers
# =============================================================================


@dataclass
class TrainingConfig:
    """Configuration for a training run.

    Attributes:
        min_sample_size: Smallest group that gets a trained model.
        outlier_threshold: Z-score cutoff for composite trimming.
        smoothing_factor: Alpha for cross-season weight smoothing.
        use_adaptive_weights: Scale weights by outcome correlation.
        scarcity_weights: Optional position -> category multipliers.
        category_impact_weights: Optional position -> category multipliers.
        week_type_lookup: Optional week id -> phase or week type map.
        outcome_field: Field holding the outcome signal for adaptive weights.
        derive_blend_weights: Whether to attach aggregation blend weights.
    """

    min_sample_size: int = DEFAULT_MIN_SAMPLE_SIZE
    outlier_threshold: float = DEFAULT_OUTLIER_THRESHOLD
    smoothing_factor: float = DEFAULT_SMOOTHING_FACTOR
    use_adaptive_weights: bool = False
    scarcity_weights: AdjustmentMap | None = None
    category_impact_weights: AdjustmentMap | None = None
    week_type_lookup: Mapping[str, Any] | None = None
    outcome_field: str = DEFAULT_OUTCOME_FIELD
    derive_blend_weights: bool = True

    @classmethod
    def from_settings(cls) -> TrainingConfig:
        """Create config from application settings."""
        settings = get_settings()
        return cls(
            min_sample_size=settings.min_sample_size,
            outlier_threshold=settings.outlier_threshold,
            smoothing_factor=settings.smoothing_factor,
            use_adaptive_weights=settings.use_adaptive_weights,
        )


@dataclass
class TrainingReport:
    """Accounting for one training run.

    Attributes:
        lines_seen: Input lines examined.
        lines_unclassified: Lines dropped because they could not be classified.
        groups_found: Distinct model keys among classified lines.
        groups_skipped: Keys below the minimum sample size, with their sizes.
        keys_trained: Keys that received a trained model.
    """

    lines_seen: int = 0
    lines_unclassified: int = 0
    groups_found: int = 0
    groups_skipped: dict[ModelKey, int] = field(default_factory=dict)
    keys_trained: list[ModelKey] = field(default_factory=list)


@dataclass
class _Group:
    classification: Classification
    samples: list[ParsedStats] = field(default_factory=list)
    outcomes: list[float | None] = field(default_factory=list)


# =============================================================================
# Training
# =============================================================================


def _outcome_of(line: StatLine, field_name: str) -> float | None:
    value = line.get(field_name)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _ordered_samples(group: _Group) -> tuple[list[ParsedStats], list[float] | None]:
    """Sort a group's samples so statistics do not depend on input order."""
    pairs = sorted(
        zip(group.samples, group.outcomes),
        key=lambda pair: (
            tuple(pair[0][stat] for stat in ALL_STATS),
            pair[1] if pair[1] is not None else float("-inf"),
        ),
    )
    samples = [stats for stats, _ in pairs]
    outcomes = [outcome for _, outcome in pairs]
    if any(outcome is None for outcome in outcomes):
        return samples, None
    return samples, [float(o) for o in outcomes if o is not None]


def summarize_season_range(models: Mapping[ModelKey, PositionSeasonModel]) -> SeasonRange:
    """Earliest and latest season among trained keys, in numeric order."""
    seasons = sorted({entry.season_id for entry in models.values()}, key=natural_sort_key)
    if not seasons:
        return SeasonRange()
    return SeasonRange(earliest=seasons[0], latest=seasons[-1])


def train_position_season(
    classification: Classification,
    samples: list[ParsedStats],
    config: TrainingConfig,
    outcomes: list[float] | None = None,
) -> PositionSeasonModel:
    """Train one unit from an already-ordered sample."""
    group = classification.pos_group
    if config.use_adaptive_weights:
        weights = compute_adaptive_weights(
            samples,
            group,
            outcomes,
            config.scarcity_weights,
            config.category_impact_weights,
        )
    else:
        weights = compute_weights(
            samples, group, config.scarcity_weights, config.category_impact_weights
        )

    distributions = {
        stat: build_distribution(sample[stat] for sample in samples) for stat in ALL_STATS
    }
    composites = [composite_score(sample, weights) for sample in samples]

    return PositionSeasonModel(
        season_id=classification.season_id,
        season_phase=classification.season_phase,
        aggregation_level=classification.aggregation_level,
        pos_group=group,
        entity_type=classification.entity_type,
        sample_size=len(samples),
        weights=weights,
        distributions=distributions,
        composite_distribution=build_trimmed_distribution(
            composites, config.outlier_threshold
        ),
    )


def train_with_report(
    stat_lines: Iterable[StatLine],
    config: TrainingConfig | None = None,
) -> tuple[RankingModel, TrainingReport]:
    """Train a ranking model and report what was kept and skipped.

    Args:
        stat_lines: Historical stat lines of any level and position.
        config: Training options; defaults apply when omitted.

    Returns:
        Tuple of (model, report). Unclassifiable lines and undersized
        groups are counted in the report, never raised.
    """
    config = config or TrainingConfig()
    report = TrainingReport()
    groups: dict[ModelKey, _Group] = {}

    for line in stat_lines:
        report.lines_seen += 1
        classification = classify(line, config.week_type_lookup)
        if classification is None:
            report.lines_unclassified += 1
            continue
        key = build_model_key(classification)
        group = groups.setdefault(key, _Group(classification=classification))
        group.samples.append(parse_stats(line))
        group.outcomes.append(_outcome_of(line, config.outcome_field))

    report.groups_found = len(groups)
    if report.lines_unclassified:
        logger.warning(
            "Skipped {} of {} lines that could not be classified",
            report.lines_unclassified,
            report.lines_seen,
        )

    models: dict[ModelKey, PositionSeasonModel] = {}
    weights_by_position: dict[PositionGroup, list[CategoryWeights]] = {
        group: [] for group in PositionGroup
    }
    total_samples = 0

    for key in sorted(groups):
        group = groups[key]
        if len(group.samples) < config.min_sample_size:
            report.groups_skipped[key] = len(group.samples)
            logger.debug(
                "Skipping {}: {} samples < {}", key, len(group.samples), config.min_sample_size
            )
            continue

        samples, outcomes = _ordered_samples(group)
        entry = train_position_season(group.classification, samples, config, outcomes)
        models[key] = entry
        weights_by_position[entry.pos_group].append(entry.weights)
        total_samples += entry.sample_size
        report.keys_trained.append(key)

    global_weights = {
        group.value: compute_global_weights(weight_sets, group)
        for group, weight_sets in weights_by_position.items()
    }

    now = datetime.now(timezone.utc)
    model = RankingModel(
        version=MODEL_FORMAT_VERSION,
        trained_at=now.replace(microsecond=now.microsecond // 1000 * 1000),
        total_samples=total_samples,
        season_range=summarize_season_range(models),
        models=models,
        global_weights=global_weights,
        aggregation_blend_weights=(
            derive_blend_weights(models[key] for key in sorted(models))
            if config.derive_blend_weights
            else {}
        ),
    )

    logger.info(
        "Trained {} models from {} samples ({} groups below minimum)",
        len(models),
        total_samples,
        len(report.groups_skipped),
    )
    return model, report


def train(
    stat_lines: Iterable[StatLine],
    config: TrainingConfig | None = None,
) -> RankingModel:
    """Train a ranking model from historical stat lines."""
    model, _ = train_with_report(stat_lines, config)
    return model


# =============================================================================
# Cross-season inspection
# =============================================================================


def smoothed_weights(
    model: RankingModel,
    pos_group: PositionGroup | str,
    aggregation_level: AggregationLevel | str,
    alpha: float = DEFAULT_SMOOTHING_FACTOR,
    season_phase: SeasonPhase | str = SeasonPhase.REGULAR_SEASON,
) -> dict[str, CategoryWeights]:
    """Exponentially smoothed weights across seasons.

    Args:
        model: Trained model.
        pos_group: Position group to follow.
        aggregation_level: Aggregation level to follow.
        alpha: Smoothing factor in [0, 1]; 1 reproduces the raw weights.
        season_phase: Phase to follow.

    Returns:
        Season id to smoothed weights, in season order.
    """
    group = PositionGroup(pos_group)
    level = AggregationLevel(aggregation_level)
    phase = SeasonPhase(season_phase)

    entries = sorted(
        (
            entry
            for entry in model.models.values()
            if entry.pos_group is group
            and entry.aggregation_level is level
            and entry.season_phase is phase
        ),
        key=lambda entry: natural_sort_key(entry.season_id),
    )
    if not entries:
        return {}

    series = {
        stat: exponential_smoothing([entry.weights.get(stat, 0.0) for entry in entries], alpha)
        for stat in ALL_STATS
    }
    return {
        entry.season_id: {stat: series[stat][index] for stat in ALL_STATS}
        for index, entry in enumerate(entries)
    }
