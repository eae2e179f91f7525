"""Integration tests for the rollup pipeline against the SQL row store.

Loads a small league into SQLite, rolls it up, scores matchups, and checks
the standings written back.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from gshl_rank.aggregation.pipeline import AggregationPipeline, PipelineStatus
from gshl_rank.data.db import create_sqlite_engine
from gshl_rank.data.store import NATURAL_KEY_FIELDS, SqlRowStore, build_natural_key
from gshl_rank.ranking.model import RankingModel

pytestmark = [pytest.mark.integration]


@pytest.fixture
def sql_store(league_records: dict[str, list[dict[str, Any]]]) -> SqlRowStore:
    """In-memory SQLite store seeded with the sample league."""
    store = SqlRowStore(create_sqlite_engine(":memory:"))
    for model, records in league_records.items():
        for index, record in enumerate(records):
            if model in NATURAL_KEY_FIELDS:
                key = build_natural_key(model, record)
            else:
                key = str(record.get("id", index))
            store.upsert(model, key, record)
    return store


class TestSeasonRollup:
    """Full season through the SQL store."""

    def test_full_season(self, sql_store: SqlRowStore, trained_model: RankingModel) -> None:
        """Weeks, matchups, and standings should all land in the store."""
        pipeline = AggregationPipeline(sql_store, ranking_model=trained_model)

        for week_id in ("1", "2"):
            assert pipeline.rollup_week(week_id).status == PipelineStatus.COMPLETED
        assert pipeline.score_matchups("10", today=date(2024, 2, 1)).errors == []
        season = pipeline.rollup_season("10")
        assert season.status == PipelineStatus.COMPLETED

        assert sql_store.count("PlayerWeek") == 16
        assert sql_store.count("PlayerTotal") == 8

        matchups = {m["id"]: m for m in sql_store.find_many("Matchup")}
        assert matchups["m1"]["homeWin"] is True
        assert matchups["m3"]["awayWin"] is True
        assert matchups["m4"]["awayWin"] is True

        standings = sorted(sql_store.find_many("TeamSeason"), key=lambda s: s["overallRk"])
        assert [s["gshlTeamId"] for s in standings] == ["t1", "t3", "t2", "t4"]
        assert [s["streak"] for s in standings] == ["2W", "2W", "2L", "2L"]
        assert all("Rating" in s for s in standings)

    def test_rebuild_is_idempotent(self, sql_store: SqlRowStore) -> None:
        """Rebuilding the same date twice should only update."""
        pipeline = AggregationPipeline(sql_store)
        first = pipeline.rebuild_for_date("2024-01-03")
        snapshot = sql_store.find_many("TeamSeason")
        second = pipeline.rebuild_for_date("2024-01-03")

        assert first.status == PipelineStatus.COMPLETED
        assert sum(second.created.values()) == 0
        assert second.updated["TeamWeek"] == 4
        assert sql_store.find_many("TeamSeason") == snapshot
