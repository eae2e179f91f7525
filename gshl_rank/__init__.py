"""GSHL Performance Ranking & Stats Rollup Engine.

A Python library and CLI that rolls raw per-day fantasy-hockey stat lines up
through week and season aggregates, trains position- and era-specific ranking
models, and scores any stat line on a cross-era percentile scale.

Example:
    >>> from gshl_rank.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.model_dir)
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "GSHL Stats Team"

# Public API exports
from gshl_rank.config import Settings, get_settings

__all__ = [
    "Settings",
    "__author__",
    "__version__",
    "get_settings",
]
