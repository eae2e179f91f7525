"""Trained ranking model containers and their JSON document form.

A ``RankingModel`` is produced once per training run and consumed read-only
by the ranking engine. It serialises to a single camelCase JSON document with
``trainedAt`` as an ISO-8601 timestamp; keys are emitted in sorted order so
that the same training input always yields the same text.

Example:
    >>> from gshl_rank.ranking.model import serialize_model, deserialize_model
    >>> text = serialize_model(model)
    >>> deserialize_model(text) == model
    True
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from gshl_rank.ranking.categories import ALL_STATS
from gshl_rank.ranking.distribution import Distribution
from gshl_rank.types import (
    AggregationLevel,
    CategoryWeights,
    EntityType,
    ModelKey,
    PositionGroup,
    SeasonPhase,
)

MODEL_FORMAT_VERSION = "2.0.0"

BLEND_COMPONENTS: tuple[str, ...] = ("all", "top5", "top3", "top2")

# aggregation level -> position group (or DEFAULT) -> component -> weight
BlendWeightsMap = dict[str, dict[str, dict[str, float]]]


# =============================================================================
# Data Containers
# =============================================================================


@dataclass(frozen=True)
class SeasonRange:
    """Earliest and latest season ids among trained keys."""

    earliest: str = ""
    latest: str = ""


@dataclass
class PositionSeasonModel:
    """One trained unit for a single model key.

    Attributes:
        season_id: Season the sample came from.
        season_phase: Phase of the sample.
        aggregation_level: Granularity of the sample.
        pos_group: Position group of the sample.
        entity_type: Player or team.
        sample_size: Number of lines trained on.
        weights: Category weights over every tracked category.
        distributions: Per-category distributions.
        composite_distribution: Outlier-trimmed weighted composite distribution.
    """

    season_id: str
    season_phase: SeasonPhase
    aggregation_level: AggregationLevel
    pos_group: PositionGroup
    entity_type: EntityType
    sample_size: int
    weights: CategoryWeights
    distributions: dict[str, Distribution]
    composite_distribution: Distribution

    def to_dict(self) -> dict[str, Any]:
        return {
            "seasonId": self.season_id,
            "seasonPhase": self.season_phase.value,
            "aggregationLevel": self.aggregation_level.value,
            "posGroup": self.pos_group.value,
            "entityType": self.entity_type.value,
            "sampleSize": self.sample_size,
            "weights": {stat: self.weights.get(stat, 0.0) for stat in ALL_STATS},
            "distributions": {
                stat: self.distributions[stat].to_dict()
                for stat in ALL_STATS
                if stat in self.distributions
            },
            "compositeDistribution": self.composite_distribution.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PositionSeasonModel:
        pos_group = PositionGroup(data["posGroup"])
        default_entity = EntityType.TEAM if pos_group is PositionGroup.TEAM else EntityType.PLAYER
        return cls(
            season_id=str(data.get("seasonId", "")),
            season_phase=SeasonPhase(data.get("seasonPhase", SeasonPhase.REGULAR_SEASON.value)),
            aggregation_level=AggregationLevel(data["aggregationLevel"]),
            pos_group=pos_group,
            entity_type=EntityType(data.get("entityType", default_entity.value)),
            sample_size=int(data.get("sampleSize", 0)),
            weights={stat: float(w) for stat, w in (data.get("weights") or {}).items()},
            distributions={
                stat: Distribution.from_dict(dist)
                for stat, dist in (data.get("distributions") or {}).items()
            },
            composite_distribution=Distribution.from_dict(data.get("compositeDistribution")),
        )


@dataclass
class RankingModel:
    """Complete output of a training run.

    Attributes:
        version: Model format version.
        trained_at: UTC training timestamp.
        total_samples: Lines used across all retained keys.
        season_range: Earliest and latest trained seasons.
        models: Trained units by model key.
        global_weights: Mean weights per position group.
        aggregation_blend_weights: Advisory blend profiles for callers.
    """

    version: str = MODEL_FORMAT_VERSION
    trained_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    total_samples: int = 0
    season_range: SeasonRange = field(default_factory=SeasonRange)
    models: dict[ModelKey, PositionSeasonModel] = field(default_factory=dict)
    global_weights: dict[str, CategoryWeights] = field(default_factory=dict)
    aggregation_blend_weights: BlendWeightsMap = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-compatible document form."""
        return {
            "version": self.version,
            "trainedAt": _format_timestamp(self.trained_at),
            "totalSamples": self.total_samples,
            "seasonRange": {
                "earliest": self.season_range.earliest,
                "latest": self.season_range.latest,
            },
            "models": {key: self.models[key].to_dict() for key in sorted(self.models)},
            "globalWeights": {
                group: {stat: weights.get(stat, 0.0) for stat in ALL_STATS}
                for group, weights in sorted(self.global_weights.items())
            },
            "aggregationBlendWeights": self.aggregation_blend_weights,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RankingModel:
        """Build from the document form, defaulting optional fields."""
        raw_range = data.get("seasonRange") or {}
        raw_trained = data.get("trainedAt")
        return cls(
            version=str(data.get("version", MODEL_FORMAT_VERSION)),
            trained_at=(
                _parse_timestamp(raw_trained) if raw_trained else datetime.now(timezone.utc)
            ),
            total_samples=int(data.get("totalSamples", 0)),
            season_range=SeasonRange(
                earliest=str(raw_range.get("earliest", "")),
                latest=str(raw_range.get("latest", "")),
            ),
            models={
                key: PositionSeasonModel.from_dict(entry)
                for key, entry in (data.get("models") or {}).items()
            },
            global_weights={
                group: {stat: float(w) for stat, w in weights.items()}
                for group, weights in (data.get("globalWeights") or {}).items()
            },
            aggregation_blend_weights={
                level: {
                    group: {name: float(v) for name, v in blend.items()}
                    for group, blend in groups.items()
                }
                for level, groups in (data.get("aggregationBlendWeights") or {}).items()
            },
        )


# =============================================================================
# Serialization
# =============================================================================


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def _parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def serialize_model(model: RankingModel) -> str:
    """Serialize a model to its JSON document."""
    return json.dumps(model.to_dict(), indent=2, sort_keys=True)


def deserialize_model(text: str) -> RankingModel:
    """Parse a JSON document produced by ``serialize_model``.

    Raises:
        ValueError: If the text is not a JSON object.
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Ranking model document must be a JSON object")
    return RankingModel.from_dict(data)
