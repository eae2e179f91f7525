"""Rollup orchestration against a row store.

This module provides the AggregationPipeline class, which reads source
records from a row store, runs the pure rollup edges, scores matchups, and
upserts the results by natural key. Runs are append/update only: targets
whose keys disappear from the source data are left in place.

Row-store record kinds read besides the stat hierarchy:
    Week: ``{id, seasonId, weekType, startDate, endDate}``
    Team: ``{id, seasonId, confId}``
    Matchup: ``{id, seasonId, weekId, homeTeamId, awayTeamId, ...}``

Example:
    >>> from gshl_rank.aggregation.pipeline import AggregationPipeline
    >>> from gshl_rank.data import InMemoryRowStore
    >>> pipeline = AggregationPipeline(InMemoryRowStore(records))
    >>> result = pipeline.rollup_week("12")
    >>> result.created["PlayerWeek"]
    14
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any

from gshl_rank.aggregation.config import (
    PLAYER_DAY_TO_TEAM_DAY,
    PLAYER_DAY_TO_WEEK,
    PLAYER_WEEK_TO_SPLIT,
    PLAYER_WEEK_TO_TOTAL,
    TEAM_DAY_TO_WEEK,
    TEAM_WEEK_TO_SEASON,
)
from gshl_rank.aggregation.matchups import completed_week_ids, resolve_matchups
from gshl_rank.aggregation.rollup import WeekMetadata, aggregate, filter_active_days
from gshl_rank.aggregation.standings import apply_standings, count_players_used
from gshl_rank.data.store import build_natural_key
from gshl_rank.logging import FAIL, SUCCESS, WARN
from gshl_rank.ranking.engine import rank_many
from gshl_rank.types import Record, RowStore

if TYPE_CHECKING:
    from gshl_rank.ranking.model import RankingModel

logger = logging.getLogger(__name__)

RATING_FIELD = "Rating"
RATING_PRECISION = 2


class PipelineStatus(Enum):
    """Status of a pipeline run."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RollupResult:
    """Results from a pipeline run.

    Attributes:
        status: Final run status.
        created: Records created per target kind.
        updated: Records updated per target kind.
        skipped_days: Player days dropped for having no game played.
        errors: Error messages.
        duration_seconds: Total run time in seconds.
    """

    status: PipelineStatus = PipelineStatus.PENDING
    created: dict[str, int] = field(default_factory=dict)
    updated: dict[str, int] = field(default_factory=dict)
    skipped_days: int = 0
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def record(self, model: str, created: int, updated: int) -> None:
        self.created[model] = self.created.get(model, 0) + created
        self.updated[model] = self.updated.get(model, 0) + updated

    def merge(self, other: RollupResult) -> None:
        """Fold another run's counts and errors into this one."""
        for model in other.created.keys() | other.updated.keys():
            self.record(model, other.created.get(model, 0), other.updated.get(model, 0))
        self.skipped_days += other.skipped_days
        self.errors.extend(other.errors)
        if other.status == PipelineStatus.FAILED:
            self.status = PipelineStatus.FAILED

    @property
    def total_written(self) -> int:
        return sum(self.created.values()) + sum(self.updated.values())


def upsert_records(
    store: RowStore, model: str, records: Iterable[Mapping[str, Any]]
) -> tuple[int, int]:
    """Upsert records by natural key.

    Returns:
        (created, updated) counts.
    """
    created = updated = 0
    for record in records:
        if store.upsert(model, build_natural_key(model, record), record):
            created += 1
        else:
            updated += 1
    return created, updated


class AggregationPipeline:
    """Orchestrates rollups, standings, and matchup scoring.

    Provides methods for:
    - Weekly rollups (player weeks, team days, team weeks)
    - Season rollups (player splits and totals, team seasons with standings)
    - Matchup scoring from team weeks
    - Rebuilding everything touched by a single date

    When a ranking model is supplied, every written stat record is rated
    and carries a ``Rating`` field (None when it cannot be scored).
    """

    def __init__(self, store: RowStore, ranking_model: RankingModel | None = None) -> None:
        """Initialize pipeline.

        Args:
            store: Row store to read from and write to.
            ranking_model: Optional model used to rate written records.
        """
        self.store = store
        self.ranking_model = ranking_model
        self.logger = logging.getLogger(self.__class__.__name__)

    # =========================================================================
    # Public operations
    # =========================================================================

    def rollup_week(self, week_id: str) -> RollupResult:
        """Roll one week's player days up to player weeks, team days, and team weeks.

        Args:
            week_id: Week to roll up.

        Returns:
            RollupResult with counts per target kind.
        """
        return self._run(f"week {week_id}", lambda result: self._rollup_week(week_id, result))

    def rollup_season(self, season_id: str) -> RollupResult:
        """Roll a season's weeks up to splits, totals, and team seasons.

        Team seasons also receive records, streaks, players used, and
        standings ranks from the season's matchups.
        """
        return self._run(
            f"season {season_id}", lambda result: self._rollup_season(season_id, result)
        )

    def score_matchups(self, season_id: str, today: date | None = None) -> RollupResult:
        """Score a season's matchups from its team weeks.

        Winners are only recorded for weeks that ended before ``today``.
        """
        return self._run(
            f"matchups {season_id}",
            lambda result: self._score_matchups(season_id, today, result),
        )

    def rebuild_for_date(
        self, target_date: date | str, today: date | None = None
    ) -> RollupResult:
        """Rebuild the week and season containing a date.

        Runs the week rollup, matchup scoring, and season rollup in that
        order so standings see freshly scored matchups.

        Args:
            target_date: Any date inside the week to rebuild.
            today: Cutoff for completed weeks when scoring matchups.
                Defaults to the current date.
        """
        day = target_date if isinstance(target_date, str) else target_date.isoformat()
        week = self._find_week(day)
        if week is None:
            self.logger.warning(f"{WARN} No week contains {day}")
            return RollupResult(status=PipelineStatus.FAILED, errors=[f"No week contains {day}"])

        week_id = str(week.get("id"))
        season_id = str(week.get("seasonId"))
        self.logger.info(f"Rebuilding week {week_id} of season {season_id} for {day}")

        result = RollupResult(status=PipelineStatus.COMPLETED)
        result.merge(self.rollup_week(week_id))
        result.merge(self.score_matchups(season_id, today))
        result.merge(self.rollup_season(season_id))
        return result

    # =========================================================================
    # Steps
    # =========================================================================

    def _rollup_week(self, week_id: str, result: RollupResult) -> None:
        player_days = self.store.find_many("PlayerDay", {"weekId": week_id})
        active = filter_active_days(player_days)
        result.skipped_days = len(player_days) - len(active)
        if not active:
            self.logger.warning(f"{WARN} No active player days for week {week_id}")
            return

        week_metadata = self._week_metadata()
        player_weeks = aggregate(active, PLAYER_DAY_TO_WEEK, week_metadata)
        team_days = aggregate(active, PLAYER_DAY_TO_TEAM_DAY, week_metadata)
        team_weeks = aggregate(team_days, TEAM_DAY_TO_WEEK, week_metadata)

        self._write(result, "PlayerWeek", player_weeks, week_metadata)
        self._write(result, "TeamDay", team_days, week_metadata)
        self._write(result, "TeamWeek", team_weeks, week_metadata)

    def _rollup_season(self, season_id: str, result: RollupResult) -> None:
        week_metadata = self._week_metadata(season_id)
        season_filter = {"seasonId": season_id}

        player_weeks = self.store.find_many("PlayerWeek", season_filter)
        if player_weeks:
            splits = aggregate(player_weeks, PLAYER_WEEK_TO_SPLIT, week_metadata)
            totals = aggregate(player_weeks, PLAYER_WEEK_TO_TOTAL, week_metadata)
            self._write(result, "PlayerSplit", splits, week_metadata)
            self._write(result, "PlayerTotal", totals, week_metadata)
        else:
            self.logger.warning(f"{WARN} No player weeks for season {season_id}")

        team_weeks = self.store.find_many("TeamWeek", season_filter)
        if not team_weeks:
            self.logger.warning(f"{WARN} No team weeks for season {season_id}")
            return

        team_seasons = aggregate(team_weeks, TEAM_WEEK_TO_SEASON, week_metadata)
        players_used = count_players_used(
            self.store.find_many("PlayerDay", season_filter), week_metadata
        )
        apply_standings(
            team_seasons,
            self.store.find_many("Matchup", season_filter),
            week_metadata,
            conferences=self._conferences(season_id),
            players_used=players_used,
        )
        self._write(result, "TeamSeason", team_seasons, week_metadata)

    def _score_matchups(self, season_id: str, today: date | None, result: RollupResult) -> None:
        season_filter = {"seasonId": season_id}
        weeks = self.store.find_many("Week", season_filter)
        matchups = self.store.find_many("Matchup", season_filter)
        if not matchups:
            self.logger.warning(f"{WARN} No matchups for season {season_id}")
            return

        scored = resolve_matchups(
            matchups,
            self.store.find_many("TeamWeek", season_filter),
            completed_week_ids(weeks, today),
        )
        created, updated = upsert_records(self.store, "Matchup", scored)
        result.record("Matchup", created, updated)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _run(self, label: str, step: Callable[[RollupResult], None]) -> RollupResult:
        result = RollupResult()
        start = time.time()
        try:
            step(result)
            result.status = PipelineStatus.COMPLETED
            self.logger.info(
                f"{SUCCESS} Rollup {label}: created={sum(result.created.values())} "
                f"updated={sum(result.updated.values())}"
            )
        except Exception as e:
            self.logger.error(f"{FAIL} Rollup {label} failed: {e}")
            result.status = PipelineStatus.FAILED
            result.errors.append(str(e))
        result.duration_seconds = time.time() - start
        return result

    def _write(
        self,
        result: RollupResult,
        model: str,
        records: list[Record],
        week_metadata: WeekMetadata,
    ) -> None:
        if self.ranking_model is not None:
            self._rate(records, week_metadata)
        created, updated = upsert_records(self.store, model, records)
        result.record(model, created, updated)
        self.logger.debug(f"{model}: created {created}, updated {updated}")

    def _rate(self, records: list[Record], week_metadata: WeekMetadata) -> None:
        week_lookup = {week_id: week.get("weekType") for week_id, week in week_metadata.items()}
        ratings = rank_many(
            records,
            self.ranking_model,
            week_phase_lookup=week_lookup,
            use_global_fallback=True,
            skip_failures=True,
        )
        for record, rating in zip(records, ratings):
            record[RATING_FIELD] = (
                None if rating is None else round(rating.score, RATING_PRECISION)
            )

    def _week_metadata(self, season_id: str | None = None) -> dict[str, Record]:
        filters = {"seasonId": season_id} if season_id else None
        return {str(week.get("id")): week for week in self.store.find_many("Week", filters)}

    def _conferences(self, season_id: str) -> dict[str, str]:
        teams = self.store.find_many("Team", {"seasonId": season_id})
        return {str(team.get("id")): str(team.get("confId")) for team in teams if team.get("confId")}

    def _find_week(self, day: str) -> Record | None:
        for week in self.store.find_many("Week"):
            start = str(week.get("startDate") or "")[:10]
            end = str(week.get("endDate") or "")[:10]
            if start and end and start <= day[:10] <= end:
                return week
        return None
