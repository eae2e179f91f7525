"""Stat aggregation: rollups, standings, and matchup scoring.

Submodules:
    config: Stat field groups and rollup edge definitions.
    rollup: Pure per-edge aggregation functions.
    standings: Team-season records and ranks.
    matchups: Head-to-head category scoring.
    pipeline: Orchestration against a row store.

Example:
    >>> from gshl_rank.aggregation import AggregationPipeline
    >>> AggregationPipeline(store).rollup_week("12")
"""

from gshl_rank.aggregation.config import EDGES, AggregationConfig
from gshl_rank.aggregation.matchups import MatchupResult, resolve_matchups, score_matchup
from gshl_rank.aggregation.pipeline import AggregationPipeline, RollupResult, upsert_records
from gshl_rank.aggregation.rollup import aggregate, filter_active_days, summarize
from gshl_rank.aggregation.standings import apply_standings, count_players_used

__all__ = [
    "EDGES",
    "AggregationConfig",
    "AggregationPipeline",
    "MatchupResult",
    "RollupResult",
    "aggregate",
    "apply_standings",
    "count_players_used",
    "filter_active_days",
    "resolve_matchups",
    "score_matchup",
    "summarize",
    "upsert_records",
]
