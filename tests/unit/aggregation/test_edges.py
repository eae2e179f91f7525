"""Tests for rollup edge definitions."""

from __future__ import annotations

import pytest

from gshl_rank.aggregation.config import (
    EDGES,
    GOALIE_FIELDS,
    SKATER_FIELDS,
    SUMMED_FIELDS,
)
from gshl_rank.data.store import NATURAL_KEY_FIELDS
from gshl_rank.types import EntityType


class TestEdges:
    """Tests for the edge table."""

    def test_six_edges(self) -> None:
        """The hierarchy should have six edges keyed by name."""
        assert len(EDGES) == 6
        for name, config in EDGES.items():
            assert config.name == name

    @pytest.mark.parametrize("name", sorted(EDGES))
    def test_group_by_matches_natural_key(self, name: str) -> None:
        """Each edge should group by its target's natural key fields."""
        config = EDGES[name]
        assert set(config.group_by) == set(NATURAL_KEY_FIELDS[config.target_model])

    def test_started_gating_only_from_player_days(self) -> None:
        """Only edges reading player days should gate on starts."""
        for config in EDGES.values():
            assert config.player_sourced == (config.source_model == "PlayerDay")

    def test_entity_types(self) -> None:
        """Team targets should be team entities."""
        for config in EDGES.values():
            expected = EntityType.TEAM if config.target_model.startswith("Team") else EntityType.PLAYER
            assert config.entity_type is expected

    def test_rates_never_summed(self) -> None:
        """GAA and SVP should not be in the summed fields."""
        assert "GAA" not in SUMMED_FIELDS
        assert "SVP" not in SUMMED_FIELDS
        assert not set(SKATER_FIELDS) & set(GOALIE_FIELDS)
