"""Stat categories and typed extraction of raw stat lines.

Raw records arrive from the row store as loosely-typed field bags: numbers,
numeric strings, blanks, or missing keys. ``parse_stats`` is the single
boundary where that input is coerced into the fixed numeric schema used by
the weight calculator, the trainer, and the ranking engine.

Example:
    >>> from gshl_rank.ranking.categories import parse_stats
    >>> parse_stats({"G": "2", "A": "1", "P": ""})["P"]
    3.0
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

from gshl_rank.types import PositionGroup, StatLine

# Order is fixed: serialization and composite accumulation iterate in it.
ALL_STATS: tuple[str, ...] = (
    "G",
    "A",
    "P",
    "PM",
    "PPP",
    "SOG",
    "HIT",
    "BLK",
    "W",
    "GA",
    "GAA",
    "SV",
    "SA",
    "SVP",
    "SO",
    "TOI",
)

SKATER_STATS: tuple[str, ...] = ("G", "A", "P", "PM", "PPP", "SOG", "HIT", "BLK")

GOALIE_STATS: tuple[str, ...] = ("W", "GA", "GAA", "SV", "SA", "SVP", "SO", "TOI")

TEAM_STATS: tuple[str, ...] = (
    "G",
    "A",
    "P",
    "PM",
    "PPP",
    "SOG",
    "HIT",
    "BLK",
    "W",
    "GA",
    "GAA",
    "SV",
    "SA",
    "SVP",
    "SO",
)

POSITION_RELEVANT_STATS: dict[PositionGroup, tuple[str, ...]] = {
    PositionGroup.F: SKATER_STATS,
    PositionGroup.D: SKATER_STATS,
    PositionGroup.G: GOALIE_STATS,
    PositionGroup.TEAM: TEAM_STATS,
}

LOWER_IS_BETTER: frozenset[str] = frozenset({"GA", "GAA"})

ParsedStats = dict[str, float]


def get_relevant_stats(pos_group: PositionGroup | str) -> tuple[str, ...]:
    """Return the categories that count for a position group."""
    return POSITION_RELEVANT_STATS[PositionGroup(pos_group)]


def safe_number(value: Any) -> float:
    """Coerce a raw field value to a float, defaulting to 0.

    Args:
        value: Number, numeric string, blank, or None.

    Returns:
        Finite float value, or 0.0 for anything missing or non-numeric.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def parse_stats(line: StatLine) -> ParsedStats:
    """Extract every tracked category from a raw stat line.

    Args:
        line: Raw stat record.

    Returns:
        Mapping of category to numeric value for all of ``ALL_STATS``.
    """
    stats = {stat: safe_number(line.get(stat)) for stat in ALL_STATS}

    # Older seasons recorded goals and assists without a points column
    if not stats["P"] and (stats["G"] or stats["A"]):
        stats["P"] = stats["G"] + stats["A"]

    return stats


def directional_value(stat: str, value: float) -> float:
    """Flip the sign of lower-is-better categories."""
    return -value if stat in LOWER_IS_BETTER else value


def composite_score(stats: ParsedStats, weights: Mapping[str, float]) -> float:
    """Weighted sum over tracked categories with lower-is-better flipped.

    Accumulates in ``ALL_STATS`` order and skips zero-weight categories.
    """
    total = 0.0
    for stat in ALL_STATS:
        weight = weights.get(stat, 0.0)
        if not weight:
            continue
        total += directional_value(stat, stats.get(stat, 0.0)) * weight
    return total


_NUMERIC = re.compile(r"^-?\d+(\.\d+)?$")


def natural_sort_key(value: Any) -> tuple[int, float, str]:
    """Sort key that orders numeric identifiers numerically.

    Season and week ids are numeric strings ("9" < "10"); anything
    non-numeric sorts after them, lexicographically.
    """
    text = "" if value is None else str(value).strip()
    if _NUMERIC.match(text):
        return (0, float(text), text)
    return (1, 0.0, text)
