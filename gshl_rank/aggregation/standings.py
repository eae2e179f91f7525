"""Team-season records, streaks, and standings ranks.

Team-season rollups carry win/loss records derived from completed matchups
in the weeks of their season type, the current streak, players used, and
three ranks computed from league points:

    points = 3 x (wins - home tie wins) + 2 x home tie wins + home tie losses

A "home tie win" is a matchup the home team won on the home tie-break with
equal category scores; the away side records it as a home tie loss. Teams
are ordered by points, then wins, then team id. The wildcard rank orders
every team outside its conference's top three.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from gshl_rank.aggregation.rollup import WeekMetadata, season_type_for, was_started
from gshl_rank.ranking.categories import natural_sort_key, safe_number
from gshl_rank.types import Record

logger = logging.getLogger(__name__)

WILDCARD_CONFERENCE_CUTOFF = 3


@dataclass
class TeamRecord:
    """Win/loss tallies for one team in one season type."""

    wins: int = 0
    home_tie_wins: int = 0
    home_tie_losses: int = 0
    losses: int = 0
    conf_wins: int = 0
    conf_home_tie_wins: int = 0
    conf_home_tie_losses: int = 0
    conf_losses: int = 0
    results: list[str] = field(default_factory=list)

    @property
    def points(self) -> int:
        return 3 * (self.wins - self.home_tie_wins) + 2 * self.home_tie_wins + self.home_tie_losses

    @property
    def streak(self) -> str:
        """Most recent run of identical results, e.g. ``"3W"``."""
        if not self.results:
            return ""
        last = self.results[-1]
        count = 0
        for result in reversed(self.results):
            if result != last:
                break
            count += 1
        return f"{count}{last}"


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def has_outcome(matchup: Mapping[str, Any]) -> bool:
    """Whether a winner has been recorded for a matchup."""
    return _as_bool(matchup.get("homeWin")) or _as_bool(matchup.get("awayWin"))


def _scores_equal(matchup: Mapping[str, Any]) -> bool:
    home, away = matchup.get("homeScore"), matchup.get("awayScore")
    if home in (None, "") or away in (None, ""):
        return False
    return safe_number(home) == safe_number(away)


def compute_team_record(
    team_id: str,
    matchups: Iterable[Mapping[str, Any]],
    conferences: Mapping[str, str] | None = None,
) -> TeamRecord:
    """Tally one team's results over already-filtered matchups.

    Args:
        team_id: Team to tally.
        matchups: Matchups of one season type; ordered here by week.
        conferences: Team id to conference id.

    Returns:
        TeamRecord with overall and in-conference counts.
    """
    conferences = conferences or {}
    record = TeamRecord()
    own_conf = conferences.get(team_id)

    relevant = [
        m
        for m in matchups
        if has_outcome(m) and team_id in (_text(m.get("homeTeamId")), _text(m.get("awayTeamId")))
    ]
    relevant.sort(key=lambda m: natural_sort_key(m.get("weekId")))

    for matchup in relevant:
        is_home = _text(matchup.get("homeTeamId")) == team_id
        opponent = _text(matchup.get("awayTeamId") if is_home else matchup.get("homeTeamId"))
        in_conference = bool(own_conf) and conferences.get(opponent) == own_conf
        home_win = _as_bool(matchup.get("homeWin"))
        away_win = _as_bool(matchup.get("awayWin"))
        tied = _scores_equal(matchup)

        won = (is_home and home_win) or (not is_home and away_win)
        lost = (is_home and away_win) or (not is_home and home_win)
        if won:
            record.wins += 1
            record.conf_wins += in_conference
            if is_home and tied:
                record.home_tie_wins += 1
                record.conf_home_tie_wins += in_conference
            record.results.append("W")
        elif lost:
            record.losses += 1
            record.conf_losses += in_conference
            if not is_home and tied:
                record.home_tie_losses += 1
                record.conf_home_tie_losses += in_conference
            record.results.append("L")

    return record


def count_players_used(
    player_days: Iterable[Mapping[str, Any]], week_metadata: WeekMetadata | None = None
) -> dict[tuple[str, str], int]:
    """Distinct started players per (team id, season type)."""
    used: dict[tuple[str, str], set[str]] = {}
    for day in player_days:
        if not was_started(day):
            continue
        team_id = _text(day.get("gshlTeamId"))
        player_id = _text(day.get("playerId"))
        if not team_id or not player_id:
            continue
        season_type = season_type_for(day, week_metadata).value
        used.setdefault((team_id, season_type), set()).add(player_id)
    return {key: len(players) for key, players in used.items()}


def _order_key(entry: tuple[Record, TeamRecord]) -> tuple[int, int, str]:
    team, tally = entry
    return (-tally.points, -tally.wins, _text(team.get("gshlTeamId")))


def rank_standings(
    entries: Sequence[tuple[Record, TeamRecord]], conferences: Mapping[str, str]
) -> None:
    """Write ``overallRk``, ``conferenceRk``, and ``wildcardRk`` in place.

    All entries must share one season type.
    """
    ordered = sorted(entries, key=_order_key)
    by_conference: dict[str, list[Record]] = {}
    for index, (team, _) in enumerate(ordered, start=1):
        team["overallRk"] = index
        team["conferenceRk"] = None
        team["wildcardRk"] = None
        conf = conferences.get(_text(team.get("gshlTeamId")))
        if conf:
            by_conference.setdefault(conf, []).append(team)

    for teams in by_conference.values():
        for index, team in enumerate(teams, start=1):
            team["conferenceRk"] = index

    wildcard = [
        team
        for team, _ in ordered
        if team["conferenceRk"] is not None and team["conferenceRk"] > WILDCARD_CONFERENCE_CUTOFF
    ]
    for index, team in enumerate(wildcard, start=1):
        team["wildcardRk"] = index


def apply_standings(
    team_seasons: Sequence[Record],
    matchups: Iterable[Mapping[str, Any]],
    week_metadata: WeekMetadata,
    conferences: Mapping[str, str] | None = None,
    players_used: Mapping[tuple[str, str], int] | None = None,
) -> list[Record]:
    """Attach records, streaks, players used, and ranks to team seasons.

    Args:
        team_seasons: Output of the team-week to team-season rollup.
        matchups: Season matchups; only those in weeks of each record's
            season type with a recorded outcome are counted.
        week_metadata: Week id to week record.
        conferences: Team id to conference id.
        players_used: Counts from ``count_players_used``.

    Returns:
        The same records, updated in place.
    """
    conferences = conferences or {}
    players_used = players_used or {}
    all_matchups = list(matchups)

    by_type: dict[str, list[Mapping[str, Any]]] = {}
    for matchup in all_matchups:
        week_id = _text(matchup.get("weekId"))
        if week_id not in week_metadata:
            continue
        season_type = season_type_for(matchup, week_metadata).value
        by_type.setdefault(season_type, []).append(matchup)

    entries_by_type: dict[str, list[tuple[Record, TeamRecord]]] = {}
    for team in team_seasons:
        team_id = _text(team.get("gshlTeamId"))
        season_type = _text(team.get("seasonType"))
        tally = compute_team_record(team_id, by_type.get(season_type, []), conferences)
        team.update(
            {
                "teamW": tally.wins,
                "teamHW": tally.home_tie_wins,
                "teamHL": tally.home_tie_losses,
                "teamL": tally.losses,
                "teamCCW": tally.conf_wins,
                "teamCCHW": tally.conf_home_tie_wins,
                "teamCCHL": tally.conf_home_tie_losses,
                "teamCCL": tally.conf_losses,
                "streak": tally.streak,
                "playersUsed": players_used.get((team_id, season_type), 0),
            }
        )
        entries_by_type.setdefault(season_type, []).append((team, tally))

    for season_type, entries in entries_by_type.items():
        rank_standings(entries, conferences)
        logger.debug("Ranked %d teams for season type %s", len(entries), season_type)

    return list(team_seasons)
