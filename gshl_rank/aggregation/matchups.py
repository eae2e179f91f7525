"""Head-to-head category scoring of weekly matchups.

Two team-week records are compared category by category in a fixed order.
``GAA`` is lower-is-better and only counts when both teams recorded a
positive value. The home team takes the matchup when category wins are
level.

Example:
    >>> from gshl_rank.aggregation.matchups import score_matchup
    >>> result = score_matchup(home_week, away_week)
    >>> result.home_categories_won, result.away_categories_won
    (5, 3)
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

from gshl_rank.ranking.categories import safe_number
from gshl_rank.types import Record

logger = logging.getLogger(__name__)

# (category, higher is better)
MATCHUP_CATEGORIES: tuple[tuple[str, bool], ...] = (
    ("G", True),
    ("A", True),
    ("P", True),
    ("PPP", True),
    ("SOG", True),
    ("HIT", True),
    ("BLK", True),
    ("W", True),
    ("GAA", False),
    ("SVP", True),
)

CategoryWinner = Literal["home", "away", "tie", "excluded"]


@dataclass(frozen=True)
class CategoryOutcome:
    """Result of one category comparison."""

    category: str
    home_value: float
    away_value: float
    winner: CategoryWinner


@dataclass(frozen=True)
class MatchupResult:
    """Result of a matchup.

    Attributes:
        home_categories_won: Categories won by the home team.
        away_categories_won: Categories won by the away team.
        home_win: Home team wins, including on level category counts.
        categories: Per-category outcomes in comparison order.
    """

    home_categories_won: int
    away_categories_won: int
    home_win: bool
    categories: list[CategoryOutcome] = field(default_factory=list)

    @property
    def away_win(self) -> bool:
        return not self.home_win


def home_wins_tiebreak(home_categories_won: int, away_categories_won: int) -> bool:
    """Home team takes the matchup unless strictly outscored."""
    return home_categories_won >= away_categories_won


def score_matchup(home: Mapping[str, Any], away: Mapping[str, Any]) -> MatchupResult:
    """Compare two team-week records category by category.

    Args:
        home: Home team-week record.
        away: Away team-week record.

    Returns:
        MatchupResult with category counts and the winner.
    """
    outcomes: list[CategoryOutcome] = []
    home_won = away_won = 0

    for category, higher_better in MATCHUP_CATEGORIES:
        home_value = safe_number(home.get(category))
        away_value = safe_number(away.get(category))

        if not higher_better and (home_value <= 0 or away_value <= 0):
            outcomes.append(CategoryOutcome(category, home_value, away_value, "excluded"))
            continue

        if home_value == away_value:
            winner: CategoryWinner = "tie"
        elif (home_value > away_value) == higher_better:
            winner = "home"
            home_won += 1
        else:
            winner = "away"
            away_won += 1
        outcomes.append(CategoryOutcome(category, home_value, away_value, winner))

    return MatchupResult(
        home_categories_won=home_won,
        away_categories_won=away_won,
        home_win=home_wins_tiebreak(home_won, away_won),
        categories=outcomes,
    )


def completed_week_ids(weeks: Iterable[Mapping[str, Any]], today: date | None = None) -> set[str]:
    """Ids of weeks whose end date is before ``today``."""
    today_text = (today or date.today()).isoformat()
    completed = set()
    for week in weeks:
        end = str(week.get("endDate") or "")[:10]
        if end and today_text > end:
            completed.add(str(week.get("id")))
    return completed


def resolve_matchups(
    matchups: Iterable[Mapping[str, Any]],
    team_weeks: Iterable[Mapping[str, Any]],
    completed_weeks: Collection[str],
) -> list[Record]:
    """Score matchups from team-week records.

    Scores are always written; ``homeWin`` and ``awayWin`` are only set for
    weeks in ``completed_weeks`` and left None otherwise. Matchups missing
    either team's week record are skipped.

    Returns:
        Updated copies of the scored matchups.
    """
    by_key = {
        (str(tw.get("weekId")), str(tw.get("gshlTeamId"))): tw for tw in team_weeks
    }
    updated: list[Record] = []
    for matchup in matchups:
        week_id = str(matchup.get("weekId") or "")
        if not week_id:
            continue
        home = by_key.get((week_id, str(matchup.get("homeTeamId"))))
        away = by_key.get((week_id, str(matchup.get("awayTeamId"))))
        if home is None or away is None:
            logger.warning(
                "Missing team week stats for matchup %s (week %s)", matchup.get("id"), week_id
            )
            continue

        result = score_matchup(home, away)
        record = dict(matchup)
        record["homeScore"] = result.home_categories_won
        record["awayScore"] = result.away_categories_won
        if week_id in completed_weeks:
            record["homeWin"] = result.home_win
            record["awayWin"] = result.away_win
        else:
            record["homeWin"] = None
            record["awayWin"] = None
        updated.append(record)
    return updated
