"""Tests for the ranking engine."""

from __future__ import annotations

from typing import Any

import pytest

from gshl_rank.ranking.categories import GOALIE_STATS, SKATER_STATS
from gshl_rank.ranking.classification import classify
from gshl_rank.ranking.engine import (
    GLOBAL_FALLBACK_KEY,
    GOALIE_PLAYER_DAY_BOOST,
    RankingResult,
    compare,
    grade,
    rank,
    rank_many,
    resolve_model,
)
from gshl_rank.ranking.model import RankingModel
from gshl_rank.ranking.trainer import TrainingConfig, train
from gshl_rank.types import ClassificationError, ModelResolutionError, PositionGroup


def _forward_line(**stats: Any) -> dict[str, Any]:
    line: dict[str, Any] = {
        "seasonId": "10",
        "playerId": "p99",
        "posGroup": "F",
        "date": "2024-02-01",
    }
    line.update(stats)
    return line


class TestRank:
    """Tests for rank."""

    def test_scores_forward_day(self, trained_model: RankingModel) -> None:
        """A forward day line should resolve its own unit."""
        result = rank(_forward_line(G=2, A=1, SOG=4, HIT=2, BLK=1), trained_model)

        assert result.model_key == "RS:10:playerDay:F"
        assert 0.0 <= result.score <= 100.0
        assert [entry.category for entry in result.breakdown] == list(SKATER_STATS)
        assert result.used_global_weights is False

    def test_score_bounded(self, trained_model: RankingModel) -> None:
        """Extreme lines should clip to [0, 100]."""
        high = rank(_forward_line(G=50, A=50, SOG=90, HIT=90, BLK=90, PPP=20), trained_model)
        low = rank(_forward_line(PM=-40), trained_model)
        assert high.score == 100.0
        assert low.score == 0.0

    def test_more_goals_never_scores_lower(self, trained_model: RankingModel) -> None:
        """Raising one positively weighted stat should not lower the score."""
        scores = [rank(_forward_line(G=g, A=1, SOG=3), trained_model).score for g in range(5)]
        assert scores == sorted(scores)

    def test_breakdown_reports_weights(self, trained_model: RankingModel) -> None:
        """Breakdown weights should be the unit's weights."""
        result = rank(_forward_line(G=1), trained_model)
        weights = trained_model.models[result.model_key].weights
        for entry in result.breakdown:
            assert entry.weight == weights[entry.category]
            assert 0.0 <= entry.percentile <= 100.0

    def test_goalie_day_boost(self, trained_model: RankingModel) -> None:
        """Goalie day lines should get the flat boost before clipping."""
        line = {
            "seasonId": "10",
            "playerId": "g1",
            "posGroup": "G",
            "date": "2024-02-01",
            "W": 0,
            "GA": 2,
            "GAA": 2.0,
            "SV": 25,
            "SA": 27,
            "SVP": 0.926,
            "TOI": 60,
        }
        result = rank(line, trained_model)
        assert [entry.category for entry in result.breakdown] == list(GOALIE_STATS)
        assert result.percentile >= GOALIE_PLAYER_DAY_BOOST
        assert result.score == min(result.percentile, 100.0)

    def test_unclassifiable_line_raises(self, trained_model: RankingModel) -> None:
        """A line without a season should be rejected."""
        with pytest.raises(ClassificationError):
            rank({"playerId": "p1", "posGroup": "F"}, trained_model)

    def test_unresolvable_line_raises(self, trained_model: RankingModel) -> None:
        """A position with no units should fail without fallback."""
        with pytest.raises(ModelResolutionError):
            rank({"seasonId": "10", "playerId": "d1", "posGroup": "D"}, trained_model)

    def test_global_fallback_for_do_not_play(self, trained_model: RankingModel) -> None:
        """An empty defense day should score 50 against global weights."""
        line = {
            "seasonId": "10",
            "playerId": "d1",
            "posGroup": "D",
            "date": "2024-02-01",
            "G": 0,
            "A": 0,
            "SOG": 0,
            "HIT": 0,
            "BLK": 0,
        }
        result = rank(line, trained_model, use_global_fallback=True)

        assert result is not None
        assert result.model_key == GLOBAL_FALLBACK_KEY
        assert result.used_global_weights is True
        assert result.percentile == 50.0
        assert result.pos_group is PositionGroup.D

    def test_to_dict(self, trained_model: RankingModel) -> None:
        """The dict form should use camelCase keys."""
        doc = rank(_forward_line(G=1), trained_model).to_dict()
        assert doc["modelKey"] == "RS:10:playerDay:F"
        assert doc["breakdown"][0]["category"] == "G"


class TestFallbackChain:
    """Tests for resolve_model."""

    @pytest.fixture
    def week_model(self, forward_day_factory: Any) -> RankingModel:
        lines = [
            forward_day_factory(i, season_id=season, date=None, days=3)
            for season in ("7", "10")
            for i in range(12)
        ]
        return train(lines, TrainingConfig(min_sample_size=10))

    def test_exact_key(self, week_model: RankingModel) -> None:
        """A trained season should resolve to itself."""
        c = classify({"seasonId": "7", "playerId": "p", "posGroup": "F", "weekId": "2", "days": 3})
        assert c is not None
        key, _ = resolve_model(c, week_model)
        assert key == "RS:7:playerWeek:F"

    def test_missing_season_uses_latest(self, week_model: RankingModel) -> None:
        """An untrained season should fall back to the latest season."""
        line = {"seasonId": "9", "playerId": "p", "posGroup": "F", "weekId": "2", "days": 3}
        assert rank(line, week_model).model_key == "RS:10:playerWeek:F"

    def test_playoffs_fall_back_to_regular_season(self, week_model: RankingModel) -> None:
        """A playoff line should use the same season's regular season unit."""
        line = {
            "seasonId": "7",
            "seasonType": "PO",
            "playerId": "p",
            "posGroup": "F",
            "weekId": "2",
            "days": 3,
        }
        assert rank(line, week_model).model_key == "RS:7:playerWeek:F"

    def test_level_and_group_scan(self) -> None:
        """Without regular season units any unit of the same slice should match."""
        lines = [
            {
                "seasonId": "5",
                "seasonType": "PO",
                "playerId": f"p{i}",
                "posGroup": "F",
                "weekId": "20",
                "days": 2,
                "G": i % 3,
            }
            for i in range(10)
        ]
        model = train(lines, TrainingConfig(min_sample_size=10))
        line = {"seasonId": "8", "playerId": "p", "posGroup": "F", "weekId": "2", "days": 3}
        assert rank(line, model).model_key == "PO:5:playerWeek:F"

    def test_no_match_returns_none(self, week_model: RankingModel) -> None:
        """A different level should not resolve."""
        c = classify({"seasonId": "7", "playerId": "p", "posGroup": "F", "date": "2024-01-01"})
        assert c is not None
        assert resolve_model(c, week_model) is None


class TestRankMany:
    """Tests for rank_many."""

    def test_matches_individual_calls(self, trained_model: RankingModel) -> None:
        """Batch results should equal ranking each line alone."""
        lines = [_forward_line(G=g, SOG=g + 1) for g in range(4)]
        assert rank_many(lines, trained_model) == [rank(line, trained_model) for line in lines]
        assert rank_many(list(reversed(lines)), trained_model) == [
            rank(line, trained_model) for line in reversed(lines)
        ]

    def test_skip_failures(self, trained_model: RankingModel) -> None:
        """Unscorable lines should become None when skipping."""
        lines = [_forward_line(G=1), {"playerId": "x"}]
        results = rank_many(lines, trained_model, skip_failures=True)
        assert isinstance(results[0], RankingResult)
        assert results[1] is None

    def test_failures_raise_by_default(self, trained_model: RankingModel) -> None:
        """Without skipping the first failure should propagate."""
        with pytest.raises(ClassificationError):
            rank_many([{"playerId": "x"}], trained_model)


class TestGradeAndCompare:
    """Tests for grade and compare."""

    @pytest.mark.parametrize(
        ("score", "label"),
        [
            (100.0, "Elite"),
            (95.0, "Elite"),
            (94.99, "Excellent"),
            (90.0, "Excellent"),
            (85.0, "Great"),
            (70.0, "Good"),
            (65.0, "Above Average"),
            (50.0, "Average"),
            (49.9, "Below Average"),
            (30.0, "Poor"),
            (20.0, "Very Poor"),
            (19.99, "Minimal"),
            (0.0, "Minimal"),
            (-10.0, "Minimal"),
            (130.0, "Elite"),
        ],
    )
    def test_grade_bands(self, score: float, label: str) -> None:
        """Scores should map to their band."""
        assert grade(score) == label

    def _result(self, score: float) -> RankingResult:
        from gshl_rank.types import AggregationLevel, SeasonPhase

        return RankingResult(
            score=score,
            percentile=score,
            model_key="RS:10:playerDay:F",
            season_id="10",
            aggregation_level=AggregationLevel.PLAYER_DAY,
            pos_group=PositionGroup.F,
            season_phase=SeasonPhase.REGULAR_SEASON,
        )

    def test_compare_winner(self) -> None:
        """The higher score should win."""
        comparison = compare(self._result(70.0), self._result(60.0))
        assert comparison.better == "a"
        assert comparison.score_difference == pytest.approx(10.0)
        assert compare(self._result(60.0), self._result(70.0)).better == "b"

    def test_compare_tie_within_epsilon(self) -> None:
        """Scores within the tolerance should tie."""
        comparison = compare(self._result(60.0), self._result(60.0005))
        assert comparison.better == "tie"
        assert comparison.score_difference == 0.0
