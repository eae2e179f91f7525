"""Tests for aggregation blend weight derivation."""

from __future__ import annotations

import pytest

from gshl_rank.ranking.blend import (
    DEFAULT_GROUP,
    HIGH_VARIANCE_PROFILE,
    LOW_VARIANCE_PROFILE,
    derive_blend_weights,
    interpolate_profiles,
    normalize_blend,
)
from gshl_rank.ranking.distribution import Distribution
from gshl_rank.ranking.model import PositionSeasonModel
from gshl_rank.types import AggregationLevel, EntityType, PositionGroup, SeasonPhase


def _entry(
    level: AggregationLevel,
    group: PositionGroup,
    mean: float,
    std_dev: float,
    sample_size: int = 100,
) -> PositionSeasonModel:
    return PositionSeasonModel(
        season_id="10",
        season_phase=SeasonPhase.REGULAR_SEASON,
        aggregation_level=level,
        pos_group=group,
        entity_type=EntityType.TEAM if group is PositionGroup.TEAM else EntityType.PLAYER,
        sample_size=sample_size,
        weights={},
        distributions={},
        composite_distribution=Distribution(mean=mean, std_dev=std_dev),
    )


class TestProfiles:
    """Tests for profile interpolation and normalization."""

    def test_interpolation_endpoints(self) -> None:
        """0 and 1 should give the low and high profiles."""
        assert interpolate_profiles(0.0) == pytest.approx(LOW_VARIANCE_PROFILE)
        assert interpolate_profiles(1.0) == pytest.approx(HIGH_VARIANCE_PROFILE)

    def test_normalize_sums_to_one(self) -> None:
        """Rounded weights should still sum to 1."""
        blend = normalize_blend({"all": 1.0, "top5": 1.0, "top3": 1.0, "top2": 0.0})
        assert sum(blend.values()) == pytest.approx(1.0, abs=1e-4)
        assert all(round(v, 4) == v for v in blend.values())

    def test_normalize_zero_total(self) -> None:
        """An all-zero blend should fall back to the low-variance profile."""
        assert normalize_blend({"all": 0, "top5": 0, "top3": 0, "top2": 0}) == LOW_VARIANCE_PROFILE


class TestDeriveBlendWeights:
    """Tests for derive_blend_weights."""

    def test_empty_without_usable_units(self) -> None:
        """Units without positive mean and spread should be ignored."""
        entries = [
            _entry(AggregationLevel.PLAYER_DAY, PositionGroup.F, 0.0, 1.0),
            _entry(AggregationLevel.PLAYER_DAY, PositionGroup.G, 2.0, 0.0),
        ]
        assert derive_blend_weights(entries) == {}

    def test_volatile_levels_lean_on_top_performers(self) -> None:
        """Spiky day data should weight the top tiers more than season totals."""
        entries = [
            _entry(AggregationLevel.PLAYER_DAY, PositionGroup.F, 1.0, 3.0),
            _entry(AggregationLevel.PLAYER_TOTAL, PositionGroup.F, 10.0, 1.0),
        ]
        result = derive_blend_weights(entries)

        day = result["playerDay"]["F"]
        total = result["playerTotal"]["F"]
        assert day["all"] < total["all"]
        assert day["top2"] > total["top2"]
        assert total == LOW_VARIANCE_PROFILE

    def test_default_group_averages_positions(self) -> None:
        """Each level should carry a DEFAULT profile."""
        entries = [
            _entry(AggregationLevel.PLAYER_WEEK, PositionGroup.F, 1.0, 1.0),
            _entry(AggregationLevel.PLAYER_WEEK, PositionGroup.D, 1.0, 0.2),
        ]
        result = derive_blend_weights(entries)
        assert set(result["playerWeek"]) == {"F", "D", DEFAULT_GROUP}
        for blend in result["playerWeek"].values():
            assert sum(blend.values()) == pytest.approx(1.0, abs=1e-4)

    def test_volatility_capped(self) -> None:
        """Volatility beyond the cap should not dominate the pool."""
        entries = [
            _entry(AggregationLevel.TEAM_WEEK, PositionGroup.TEAM, 0.001, 50.0),
            _entry(AggregationLevel.TEAM_SEASON, PositionGroup.TEAM, 1.0, 0.1),
        ]
        result = derive_blend_weights(entries)
        assert result["teamWeek"]["TEAM"] == normalize_blend(interpolate_profiles(1.0))
