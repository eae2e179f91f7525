"""Versioned on-disk storage for trained ranking models.

Each training run is saved under its own semantic version directory with the
serialized model and a metadata summary.

Storage Structure:
    data/models/
    ├── v1.0.0/
    │   ├── ranking-model.json
    │   └── metadata.json
    ├── v1.0.1/
    │   └── ...
    └── latest -> v1.0.1 (symlink)

Example:
    >>> from gshl_rank.ranking.registry import ModelRegistry
    >>> registry = ModelRegistry()
    >>> registry.save_model(model, registry.next_version())
    >>> model = registry.load_model("latest")
"""

from __future__ import annotations

import json
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from gshl_rank.config import get_settings
from gshl_rank.logging import get_logger
from gshl_rank.ranking.model import RankingModel, deserialize_model, serialize_model
from gshl_rank.types import ModelNotFoundError

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

MODEL_FILE = "ranking-model.json"
METADATA_FILE = "metadata.json"
LATEST_LINK = "latest"

VERSION_PATTERN = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")


# =============================================================================
# Data Containers
# =============================================================================


@dataclass
class ModelMetadata:
    """Summary of a saved model version.

    Attributes:
        version: Registry version string (e.g., "1.0.0").
        saved_at: When the version was written.
        trained_at: Training timestamp from the model.
        total_samples: Samples across trained keys.
        model_count: Number of trained keys.
        season_range: Earliest and latest trained seasons.
        config: Training options used.
        git_commit: Short commit hash, when available.
        parent_version: Version this one replaced.
    """

    version: str
    saved_at: datetime
    trained_at: str
    total_samples: int
    model_count: int
    season_range: dict[str, str] = field(default_factory=dict)
    config: dict[str, Any] = field(default_factory=dict)
    git_commit: str | None = None
    parent_version: str | None = None


@dataclass
class VersionInfo:
    """Information about a model version.

    Attributes:
        version: Version string (e.g., "1.0.0").
        path: Path to version directory.
        metadata: Model metadata.
        is_latest: Whether this is the latest version.
    """

    version: str
    path: Path
    metadata: ModelMetadata | None = None
    is_latest: bool = False


# =============================================================================
# Registry
# =============================================================================


class ModelRegistry:
    """Version management for trained ranking models.

    Attributes:
        base_dir: Base directory for model storage.

    Example:
        >>> registry = ModelRegistry("data/models")
        >>> registry.save_model(model, "1.0.0", config={"min_sample_size": 50})
        >>> loaded = registry.load_model("latest")
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        """Initialize ModelRegistry.

        Args:
            base_dir: Directory for model storage. If None, uses config default.
        """
        if base_dir is None:
            self.base_dir = get_settings().model_dir_obj
        else:
            self.base_dir = Path(base_dir)

        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Initialized ModelRegistry at {}", self.base_dir)

    def save_model(
        self,
        model: RankingModel,
        version: str,
        config: dict[str, Any] | None = None,
        parent_version: str | None = None,
    ) -> Path:
        """Write a model and its metadata to a new version directory.

        Args:
            model: Trained ranking model.
            version: Version string (e.g., "1.0.0").
            config: Training options to record.
            parent_version: Previous version for lineage tracking.

        Returns:
            Path to the saved version directory.

        Raises:
            ValueError: If version format is invalid or version exists.
        """
        version = self._normalize_version(version)
        if not self._is_valid_version(version):
            raise ValueError(f"Invalid version format: {version}")

        version_dir = self.base_dir / f"v{version}"
        if version_dir.exists():
            raise ValueError(f"Version {version} already exists")

        version_dir.mkdir(parents=True, exist_ok=True)
        (version_dir / MODEL_FILE).write_text(serialize_model(model), encoding="utf-8")

        document = model.to_dict()
        metadata_dict = {
            "version": version,
            "saved_at": datetime.now().isoformat(),
            "trained_at": document["trainedAt"],
            "total_samples": model.total_samples,
            "model_count": len(model.models),
            "season_range": document["seasonRange"],
            "config": config or {},
            "git_commit": self._get_git_commit(),
            "parent_version": parent_version,
        }
        with open(version_dir / METADATA_FILE, "w") as f:
            json.dump(metadata_dict, f, indent=2, default=str)

        self._update_latest_link(version)

        logger.info("Saved model version {} to {}", version, version_dir)
        return version_dir

    def load_model(self, version: str = "latest") -> RankingModel:
        """Load a model by version.

        Args:
            version: Version to load ("latest" or specific like "1.0.0").

        Returns:
            Deserialized ranking model.

        Raises:
            ModelNotFoundError: If the version or its model file doesn't exist.
        """
        version_dir = self._resolve_version(version)
        model_path = version_dir / MODEL_FILE
        if not model_path.exists():
            raise ModelNotFoundError(f"Version {version} not found at {version_dir}")

        model = deserialize_model(model_path.read_text(encoding="utf-8"))
        logger.info("Loaded model version {} from {}", version, version_dir)
        return model

    def load_metadata(self, version: str = "latest") -> ModelMetadata | None:
        """Load metadata for a version.

        Args:
            version: Version to load metadata for.

        Returns:
            ModelMetadata object or None if not found.
        """
        try:
            version_dir = self._resolve_version(version)
        except ModelNotFoundError:
            return None
        metadata_path = version_dir / METADATA_FILE

        if not metadata_path.exists():
            return None

        with open(metadata_path) as f:
            data = json.load(f)

        return ModelMetadata(
            version=data["version"],
            saved_at=datetime.fromisoformat(data["saved_at"]),
            trained_at=data.get("trained_at", ""),
            total_samples=int(data.get("total_samples", 0)),
            model_count=int(data.get("model_count", 0)),
            season_range=data.get("season_range", {}),
            config=data.get("config", {}),
            git_commit=data.get("git_commit"),
            parent_version=data.get("parent_version"),
        )

    def list_versions(self) -> list[VersionInfo]:
        """List all model versions with metadata.

        Returns:
            List of VersionInfo objects, sorted by version descending.
        """
        versions = []
        latest_version = self._get_latest_version()

        for version_str, item in self._version_dirs():
            versions.append(
                VersionInfo(
                    version=version_str,
                    path=item,
                    metadata=self.load_metadata(version_str),
                    is_latest=(version_str == latest_version),
                )
            )

        versions.sort(key=lambda v: self._parse_version(v.version), reverse=True)
        return versions

    def delete_version(self, version: str) -> bool:
        """Delete a model version.

        Args:
            version: Version to delete.

        Returns:
            True if deleted, False if not found.
        """
        version = self._normalize_version(version)
        version_dir = self.base_dir / f"v{version}"

        if not version_dir.exists():
            return False

        was_latest = self._get_latest_version() == version
        shutil.rmtree(version_dir)
        logger.info("Deleted model version {}", version)

        latest_path = self.base_dir / LATEST_LINK
        if was_latest and latest_path.is_symlink():
            latest_path.unlink()
            remaining = self.list_versions()
            if remaining:
                self._update_latest_link(remaining[0].version)

        return True

    def get_latest_version(self) -> str | None:
        """Get the latest version string, or None if no versions exist."""
        return self._get_latest_version()

    def next_version(self, bump: str = "patch") -> str:
        """Calculate the next version number.

        Args:
            bump: Version component to bump ("major", "minor", "patch").

        Returns:
            Next version string.
        """
        latest = self._get_latest_version()

        if latest is None:
            return "1.0.0"

        major, minor, patch = self._parse_version(latest)

        if bump == "major":
            return f"{major + 1}.0.0"
        elif bump == "minor":
            return f"{major}.{minor + 1}.0"
        else:
            return f"{major}.{minor}.{patch + 1}"

    def _version_dirs(self) -> list[tuple[str, Path]]:
        found = []
        for item in self.base_dir.iterdir():
            if item.is_dir() and not item.is_symlink() and item.name.startswith("v"):
                version_str = item.name[1:]
                if self._is_valid_version(version_str):
                    found.append((version_str, item))
        return found

    def _resolve_version(self, version: str) -> Path:
        """Resolve version string to directory path.

        Raises:
            ModelNotFoundError: If "latest" is requested and no versions exist.
        """
        if version == LATEST_LINK:
            latest_path = self.base_dir / LATEST_LINK
            if latest_path.is_symlink() and latest_path.resolve().exists():
                return latest_path.resolve()
            latest = self._get_latest_version()
            if latest:
                return self.base_dir / f"v{latest}"
            raise ModelNotFoundError("No model versions found")
        return self.base_dir / f"v{self._normalize_version(version)}"

    def _update_latest_link(self, version: str) -> None:
        version = self._normalize_version(version)
        latest_path = self.base_dir / LATEST_LINK

        if latest_path.is_symlink() or latest_path.exists():
            latest_path.unlink()

        try:
            latest_path.symlink_to(f"v{version}")
            logger.debug("Updated latest symlink to v{}", version)
        except OSError as e:
            # Symlinks may fail on some Windows systems
            logger.warning("Could not create symlink: {}", e)

    def _get_latest_version(self) -> str | None:
        latest_path = self.base_dir / LATEST_LINK

        if latest_path.is_symlink():
            target = latest_path.resolve()
            if target.exists() and target.name.startswith("v"):
                return target.name[1:]

        versions = [version_str for version_str, _ in self._version_dirs()]
        if not versions:
            return None

        versions.sort(key=self._parse_version, reverse=True)
        return versions[0]

    def _normalize_version(self, version: str) -> str:
        if version.startswith("v"):
            return version[1:]
        return version

    def _is_valid_version(self, version: str) -> bool:
        return VERSION_PATTERN.match(version) is not None

    def _parse_version(self, version: str) -> tuple[int, int, int]:
        match = VERSION_PATTERN.match(version)
        if match:
            return int(match.group(1)), int(match.group(2)), int(match.group(3))
        return 0, 0, 0

    def _get_git_commit(self) -> str | None:
        """Get current git commit hash, or None outside a git checkout."""
        try:
            result = subprocess.run(
                ["git", "rev-parse", "--short", "HEAD"],
                capture_output=True,
                text=True,
                timeout=5,
            )
            if result.returncode == 0:
                return result.stdout.strip()
        except (subprocess.SubprocessError, FileNotFoundError):
            pass
        return None
