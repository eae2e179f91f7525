"""Type definitions and protocols for the ranking engine.

This module defines the shared vocabulary (position groups, season phases,
aggregation levels), the loosely-typed record aliases that flow in from the
row store, the row-store protocol, and the exception hierarchy.

Example:
    >>> from gshl_rank.types import PositionGroup, SeasonPhase
    >>> PositionGroup("F") is PositionGroup.F
    True
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Protocol

# =============================================================================
# Type Aliases
# =============================================================================

SeasonId = str
WeekId = str
PlayerId = str
TeamId = str
ModelKey = str

# A raw stat record as it arrives from the row store: an untyped field bag.
StatLine = Mapping[str, Any]
Record = dict[str, Any]

# Category name -> weight
CategoryWeights = dict[str, float]


# =============================================================================
# Enumerations
# =============================================================================


class PositionGroup(str, Enum):
    """Position group that selects relevant categories and weighting rules."""

    F = "F"
    D = "D"
    G = "G"
    TEAM = "TEAM"


class SeasonPhase(str, Enum):
    """Segment of a season modeled separately."""

    REGULAR_SEASON = "RS"
    PLAYOFFS = "PO"
    LOSERS_TOURNAMENT = "LT"


class EntityType(str, Enum):
    """Whether a stat line describes a player or a fantasy team."""

    PLAYER = "player"
    TEAM = "team"


class AggregationLevel(str, Enum):
    """Temporal/structural granularity of a stat line."""

    PLAYER_DAY = "playerDay"
    PLAYER_WEEK = "playerWeek"
    PLAYER_SPLIT = "playerSplit"
    PLAYER_TOTAL = "playerTotal"
    PLAYER_NHL = "playerNhl"
    TEAM_DAY = "teamDay"
    TEAM_WEEK = "teamWeek"
    TEAM_SEASON = "teamSeason"


# =============================================================================
# Protocols (Interfaces)
# =============================================================================


class RowStore(Protocol):
    """Filtered-collection service that persists and retrieves records.

    Implementations are owned by the host application. ``filters`` is a
    mapping of field name to required value; values are compared as strings.
    """

    def find_many(
        self, model: str, filters: Mapping[str, Any] | None = None
    ) -> list[Record]:
        """Return all records of ``model`` matching ``filters``."""
        ...

    def upsert(self, model: str, natural_key: str, data: Mapping[str, Any]) -> bool:
        """Create or update a record; return True when it was created."""
        ...

    def count(self, model: str, filters: Mapping[str, Any] | None = None) -> int:
        """Count records of ``model`` matching ``filters``."""
        ...


# =============================================================================
# Exceptions
# =============================================================================


class GSHLRankError(Exception):
    """Base exception for ranking engine errors."""


class ClassificationError(GSHLRankError):
    """A stat line could not be assigned a classification."""


class ModelResolutionError(GSHLRankError):
    """No trained model matched a stat line after the fallback chain."""


class ModelNotFoundError(GSHLRankError):
    """Requested model version not found in the registry."""
