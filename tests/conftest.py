"""Shared pytest fixtures for ranking engine tests.

This module contains fixtures used across multiple test modules:
- Configuration fixtures (test settings with temporary directories)
- Stat line fixtures (forward, defense, and goalie samples)
- Trained model fixtures
- Row store fixtures (in-memory store seeded with a small league)

Example:
    def test_something(forward_day_lines, trained_model):
        # forward_day_lines is a list of 60 raw forward day lines
        # trained_model is a RankingModel trained on them
        pass
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from gshl_rank.config import Settings, reset_settings
from gshl_rank.ranking.model import RankingModel
from gshl_rank.ranking.trainer import TrainingConfig, train


# =============================================================================
# Paths
# =============================================================================


@pytest.fixture
def tmp_data_dir(tmp_path: Path) -> Path:
    """Create and return temporary data directory."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "models").mkdir()
    return data_dir


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def test_settings(tmp_data_dir: Path) -> Generator[Settings, None, None]:
    """Provide test settings with temporary directories.

    Automatically resets settings singleton and cached engine after test.
    """
    from gshl_rank.data.db import reset_engine

    os.environ["GSHL_DB_PATH"] = str(tmp_data_dir / "test.db")
    os.environ["MODEL_DIR"] = str(tmp_data_dir / "models")
    os.environ["LOG_DIR"] = str(tmp_data_dir / "logs")
    os.environ["LOG_LEVEL"] = "DEBUG"

    reset_settings()
    reset_engine()
    from gshl_rank.config import get_settings

    settings = get_settings()
    settings.ensure_directories()

    yield settings

    reset_engine()
    reset_settings()
    for key in ["GSHL_DB_PATH", "MODEL_DIR", "LOG_DIR", "LOG_LEVEL"]:
        os.environ.pop(key, None)


# =============================================================================
# Stat Lines
# =============================================================================


def make_forward_day(index: int, season_id: str = "10", **overrides: Any) -> dict[str, Any]:
    """Build a forward day line whose stats cycle with ``index``."""
    goals = index % 3
    assists = (index * 7) % 4
    line: dict[str, Any] = {
        "seasonId": season_id,
        "playerId": f"p{index % 12}",
        "gshlTeamId": f"t{index % 4}",
        "posGroup": "F",
        "date": f"2024-01-{(index % 28) + 1:02d}",
        "weekId": str((index % 4) + 1),
        "G": goals,
        "A": assists,
        "P": goals + assists,
        "PM": (index % 5) - 2,
        "PPP": 1 if index % 6 == 0 else 0,
        "SOG": 1 + index % 5,
        "HIT": index % 4,
        "BLK": index % 2,
    }
    line.update(overrides)
    return line


def make_goalie_day(index: int, season_id: str = "10", **overrides: Any) -> dict[str, Any]:
    """Build a goalie day line whose stats cycle with ``index``."""
    shots = 20 + index % 15
    against = index % 5
    line: dict[str, Any] = {
        "seasonId": season_id,
        "playerId": f"g{index % 6}",
        "gshlTeamId": f"t{index % 4}",
        "posGroup": "G",
        "date": f"2024-01-{(index % 28) + 1:02d}",
        "W": 1 if index % 2 == 0 else 0,
        "GA": against,
        "GAA": float(against),
        "SV": shots - against,
        "SA": shots,
        "SVP": round((shots - against) / shots, 3),
        "SO": 1 if against == 0 else 0,
        "TOI": 60,
    }
    line.update(overrides)
    return line


@pytest.fixture
def forward_day_factory() -> Callable[..., dict[str, Any]]:
    """Factory for forward day lines; see ``make_forward_day``."""
    return make_forward_day


@pytest.fixture
def forward_day_lines() -> list[dict[str, Any]]:
    """Sixty forward day lines for season 10 with goals cycling 0, 1, 2."""
    return [make_forward_day(i) for i in range(60)]


@pytest.fixture
def goalie_day_lines() -> list[dict[str, Any]]:
    """Sixty goalie day lines for season 10."""
    return [make_goalie_day(i) for i in range(60)]


@pytest.fixture
def training_config() -> TrainingConfig:
    """Training config with a small minimum sample size."""
    return TrainingConfig(min_sample_size=10)


@pytest.fixture
def trained_model(
    forward_day_lines: list[dict[str, Any]],
    goalie_day_lines: list[dict[str, Any]],
    training_config: TrainingConfig,
) -> RankingModel:
    """Model trained on the forward and goalie day samples."""
    return train(forward_day_lines + goalie_day_lines, training_config)


# =============================================================================
# League Data
# =============================================================================


@pytest.fixture
def league_records() -> dict[str, list[dict[str, Any]]]:
    """A two-week, four-team league ready for rollups.

    Teams t1 and t2 are in conference c1, t3 and t4 in c2. Week 1 is a
    regular season week and week 2 a conference-championship week. Each
    team dresses one forward and one goalie per day.
    """
    weeks = [
        {"id": "1", "seasonId": "10", "weekType": "RS", "startDate": "2024-01-01", "endDate": "2024-01-07"},
        {"id": "2", "seasonId": "10", "weekType": "CC", "startDate": "2024-01-08", "endDate": "2024-01-14"},
    ]
    teams = [
        {"id": "t1", "seasonId": "10", "confId": "c1"},
        {"id": "t2", "seasonId": "10", "confId": "c1"},
        {"id": "t3", "seasonId": "10", "confId": "c2"},
        {"id": "t4", "seasonId": "10", "confId": "c2"},
    ]
    matchups = [
        {"id": "m1", "seasonId": "10", "weekId": "1", "homeTeamId": "t1", "awayTeamId": "t2"},
        {"id": "m2", "seasonId": "10", "weekId": "1", "homeTeamId": "t3", "awayTeamId": "t4"},
        {"id": "m3", "seasonId": "10", "weekId": "2", "homeTeamId": "t2", "awayTeamId": "t3"},
        {"id": "m4", "seasonId": "10", "weekId": "2", "homeTeamId": "t4", "awayTeamId": "t1"},
    ]

    player_days: list[dict[str, Any]] = []
    dates = {"1": ["2024-01-02", "2024-01-03"], "2": ["2024-01-09", "2024-01-10"]}
    for team_index, team in enumerate(["t1", "t2", "t3", "t4"], start=1):
        for week_id, week_dates in dates.items():
            for day in week_dates:
                player_days.append(
                    {
                        "playerId": f"f{team_index}",
                        "gshlTeamId": team,
                        "seasonId": "10",
                        "weekId": week_id,
                        "date": day,
                        "posGroup": "F",
                        "nhlPos": "C",
                        "nhlTeam": "TOR",
                        "GP": 1,
                        "GS": 1,
                        "G": team_index,
                        "A": 1,
                        "P": team_index + 1,
                        "PPP": team_index % 2,
                        "SOG": 2 + team_index,
                        "HIT": 5 - team_index,
                        "BLK": 1,
                    }
                )
                player_days.append(
                    {
                        "playerId": f"g{team_index}",
                        "gshlTeamId": team,
                        "seasonId": "10",
                        "weekId": week_id,
                        "date": day,
                        "posGroup": "G",
                        "nhlPos": "G",
                        "nhlTeam": "BOS",
                        "GP": 1,
                        "GS": 1,
                        "W": 1 if team_index % 2 else 0,
                        "GA": team_index,
                        "SV": 25,
                        "SA": 25 + team_index,
                        "TOI": 60,
                    }
                )

    return {
        "Week": weeks,
        "Team": teams,
        "Matchup": matchups,
        "PlayerDay": player_days,
    }
