"""Performance ranking: classification, training, and scoring.

Submodules:
    categories: Stat categories and typed extraction of raw lines.
    classification: Ordered rules assigning lines to model keys.
    weights: Category weight calculation.
    distribution: Distributions and percentile interpolation.
    model: Trained model containers and JSON form.
    trainer: Offline training runs.
    blend: Aggregation blend weight derivation.
    engine: Scoring, grading, and comparison.
    registry: Versioned on-disk model storage.

Example:
    >>> from gshl_rank.ranking import train, rank
    >>> model = train(history)
    >>> rank(line, model).score
"""

from gshl_rank.ranking.categories import ALL_STATS, parse_stats
from gshl_rank.ranking.classification import Classification, build_model_key, classify
from gshl_rank.ranking.distribution import Distribution, build_distribution, is_outlier
from gshl_rank.ranking.engine import RankingResult, compare, grade, rank, rank_many
from gshl_rank.ranking.model import (
    PositionSeasonModel,
    RankingModel,
    deserialize_model,
    serialize_model,
)
from gshl_rank.ranking.registry import ModelRegistry
from gshl_rank.ranking.trainer import TrainingConfig, TrainingReport, train, train_with_report
from gshl_rank.ranking.weights import compute_weights

__all__ = [
    "ALL_STATS",
    "Classification",
    "Distribution",
    "ModelRegistry",
    "PositionSeasonModel",
    "RankingModel",
    "RankingResult",
    "TrainingConfig",
    "TrainingReport",
    "build_distribution",
    "build_model_key",
    "classify",
    "compare",
    "compute_weights",
    "deserialize_model",
    "grade",
    "is_outlier",
    "parse_stats",
    "rank",
    "rank_many",
    "serialize_model",
    "train",
    "train_with_report",
]
