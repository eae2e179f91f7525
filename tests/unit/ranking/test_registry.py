"""Tests for the versioned model registry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from gshl_rank.ranking.model import RankingModel
from gshl_rank.ranking.registry import METADATA_FILE, MODEL_FILE, ModelRegistry
from gshl_rank.types import ModelNotFoundError


@pytest.fixture
def registry(tmp_path: Path) -> ModelRegistry:
    """Registry rooted in a temporary directory."""
    return ModelRegistry(base_dir=tmp_path / "models")


class TestModelRegistry:
    """Tests for ModelRegistry."""

    def test_creates_base_dir(self, registry: ModelRegistry) -> None:
        """The base directory should exist after init."""
        assert registry.base_dir.is_dir()

    def test_save_model_creates_files(
        self, registry: ModelRegistry, trained_model: RankingModel
    ) -> None:
        """save_model should create a versioned directory."""
        version_dir = registry.save_model(trained_model, "1.0.0")

        assert version_dir == registry.base_dir / "v1.0.0"
        assert (version_dir / MODEL_FILE).exists()
        assert (version_dir / METADATA_FILE).exists()

    def test_save_model_metadata(
        self, registry: ModelRegistry, trained_model: RankingModel
    ) -> None:
        """Metadata should summarize the saved model."""
        registry.save_model(
            trained_model, "1.0.0", config={"min_sample_size": 10}, parent_version="0.9.0"
        )
        with open(registry.base_dir / "v1.0.0" / METADATA_FILE) as f:
            metadata = json.load(f)

        assert metadata["version"] == "1.0.0"
        assert metadata["model_count"] == 2
        assert metadata["total_samples"] == 120
        assert metadata["config"] == {"min_sample_size": 10}
        assert metadata["parent_version"] == "0.9.0"
        assert metadata["trained_at"].endswith("Z")

    def test_save_model_duplicate_raises(
        self, registry: ModelRegistry, trained_model: RankingModel
    ) -> None:
        """Should raise error when version exists."""
        registry.save_model(trained_model, "1.0.0")
        with pytest.raises(ValueError, match="exists"):
            registry.save_model(trained_model, "1.0.0")

    def test_save_model_invalid_version_raises(
        self, registry: ModelRegistry, trained_model: RankingModel
    ) -> None:
        """Should raise error for invalid version format."""
        with pytest.raises(ValueError, match="Invalid version"):
            registry.save_model(trained_model, "invalid")

    def test_load_round_trip(self, registry: ModelRegistry, trained_model: RankingModel) -> None:
        """A loaded model should equal the saved one."""
        registry.save_model(trained_model, "1.0.0")
        assert registry.load_model("1.0.0") == trained_model
        assert registry.load_model("v1.0.0") == trained_model

    def test_load_latest(self, registry: ModelRegistry, trained_model: RankingModel) -> None:
        """latest should resolve to the newest saved version."""
        registry.save_model(trained_model, "1.0.0")
        registry.save_model(trained_model, "1.0.1")

        assert registry.get_latest_version() == "1.0.1"
        assert registry.load_model("latest") == trained_model

    def test_load_missing_raises(self, registry: ModelRegistry) -> None:
        """Loading from an empty registry should raise."""
        with pytest.raises(ModelNotFoundError):
            registry.load_model("latest")
        with pytest.raises(ModelNotFoundError):
            registry.load_model("2.0.0")

    def test_load_metadata_missing(self, registry: ModelRegistry) -> None:
        """Metadata for an unknown version should be None."""
        assert registry.load_metadata("latest") is None
        assert registry.load_metadata("1.0.0") is None

    def test_load_metadata(self, registry: ModelRegistry, trained_model: RankingModel) -> None:
        """Metadata should load into a ModelMetadata."""
        registry.save_model(trained_model, "1.0.0")
        metadata = registry.load_metadata("1.0.0")

        assert metadata is not None
        assert metadata.version == "1.0.0"
        assert metadata.model_count == 2
        assert metadata.season_range == {"earliest": "10", "latest": "10"}

    def test_list_versions_sorted(
        self, registry: ModelRegistry, trained_model: RankingModel
    ) -> None:
        """Versions should list newest first with the latest flagged."""
        for version in ("1.0.0", "1.2.0", "1.10.0"):
            registry.save_model(trained_model, version)

        versions = registry.list_versions()
        assert [v.version for v in versions] == ["1.10.0", "1.2.0", "1.0.0"]
        assert versions[0].is_latest is True
        assert not any(v.is_latest for v in versions[1:])

    @pytest.mark.parametrize(
        ("bump", "expected"),
        [("patch", "1.2.4"), ("minor", "1.3.0"), ("major", "2.0.0")],
    )
    def test_next_version(
        self, registry: ModelRegistry, trained_model: RankingModel, bump: str, expected: str
    ) -> None:
        """next_version should bump the requested component."""
        registry.save_model(trained_model, "1.2.3")
        assert registry.next_version(bump) == expected

    def test_next_version_empty(self, registry: ModelRegistry) -> None:
        """An empty registry should start at 1.0.0."""
        assert registry.next_version() == "1.0.0"

    def test_delete_version(self, registry: ModelRegistry, trained_model: RankingModel) -> None:
        """Deleting the latest should move latest to the next newest."""
        registry.save_model(trained_model, "1.0.0")
        registry.save_model(trained_model, "1.0.1")

        assert registry.delete_version("1.0.1") is True
        assert registry.get_latest_version() == "1.0.0"
        assert registry.delete_version("1.0.1") is False
