"""Distribution building and percentile interpolation.

A ``Distribution`` summarises a numeric sample with its moments, extremes,
and the p10..p99 breakpoints. Percentiles use linear interpolation on the
sorted sample at rank ``(n - 1) * p`` (the R-7 definition, numpy's default
"linear" method). The same breakpoints double as the lookup table for
turning a raw value back into a percentile.

Example:
    >>> from gshl_rank.ranking.distribution import build_distribution
    >>> dist = build_distribution([0, 1, 2, 3, 4])
    >>> dist.percentiles["p50"]
    2.0
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

PERCENTILE_LEVELS: tuple[tuple[str, float], ...] = (
    ("p10", 10.0),
    ("p25", 25.0),
    ("p50", 50.0),
    ("p75", 75.0),
    ("p90", 90.0),
    ("p95", 95.0),
    ("p99", 99.0),
)

DEFAULT_OUTLIER_THRESHOLD: float = 4.0


def _zero_percentiles() -> dict[str, float]:
    return {name: 0.0 for name, _ in PERCENTILE_LEVELS}


@dataclass(frozen=True)
class Distribution:
    """Summary statistics for one numeric sample.

    Attributes:
        mean: Arithmetic mean.
        std_dev: Population standard deviation.
        min: Smallest value.
        max: Largest value.
        percentiles: Breakpoints keyed ``p10`` .. ``p99``.
    """

    mean: float = 0.0
    std_dev: float = 0.0
    min: float = 0.0
    max: float = 0.0
    percentiles: dict[str, float] = field(default_factory=_zero_percentiles)

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase document form."""
        return {
            "mean": self.mean,
            "stdDev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "percentiles": {name: self.percentiles[name] for name, _ in PERCENTILE_LEVELS},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Distribution:
        """Build from the document form; missing fields default to 0."""
        if not data:
            return cls()
        raw = data.get("percentiles") or {}
        return cls(
            mean=float(data.get("mean", 0.0)),
            std_dev=float(data.get("stdDev", 0.0)),
            min=float(data.get("min", 0.0)),
            max=float(data.get("max", 0.0)),
            percentiles={name: float(raw.get(name, 0.0)) for name, _ in PERCENTILE_LEVELS},
        )


def sorted_sample(values: Iterable[float]) -> np.ndarray:
    """Return the sample as a sorted float array.

    Statistics are always taken over the sorted array so that the result
    does not depend on input order.
    """
    return np.sort(np.asarray(list(values), dtype=float))


def mean(values: Sequence[float] | np.ndarray) -> float:
    """Arithmetic mean; 0 for an empty sample."""
    arr = sorted_sample(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def standard_deviation(values: Sequence[float] | np.ndarray) -> float:
    """Population standard deviation; 0 for an empty sample."""
    arr = sorted_sample(values)
    if arr.size == 0:
        return 0.0
    return float(arr.std())


def z_score(value: float, mean_value: float, std_dev: float) -> float:
    """Standardised distance from the mean; 0 when there is no spread."""
    if std_dev == 0:
        return 0.0
    return (value - mean_value) / std_dev


def is_outlier(
    value: float,
    mean_value: float,
    std_dev: float,
    threshold: float = DEFAULT_OUTLIER_THRESHOLD,
) -> bool:
    """Whether ``value`` lies more than ``threshold`` standard deviations out."""
    return abs(z_score(value, mean_value, std_dev)) > threshold


def build_distribution(values: Iterable[float]) -> Distribution:
    """Compute a ``Distribution`` for a sample.

    Args:
        values: Numeric sample in any order.

    Returns:
        Distribution; an empty sample yields the all-zero distribution and a
        single value collapses every field to that value.
    """
    arr = sorted_sample(values)
    if arr.size == 0:
        return Distribution()

    breakpoints = np.percentile(arr, [level for _, level in PERCENTILE_LEVELS])
    return Distribution(
        mean=float(arr.mean()),
        std_dev=float(arr.std()),
        min=float(arr[0]),
        max=float(arr[-1]),
        percentiles={
            name: float(bp) for (name, _), bp in zip(PERCENTILE_LEVELS, breakpoints)
        },
    )


def build_trimmed_distribution(
    values: Sequence[float],
    outlier_threshold: float = DEFAULT_OUTLIER_THRESHOLD,
) -> Distribution:
    """Build a distribution after dropping z-score outliers.

    Falls back to the untrimmed sample when trimming would leave nothing.
    """
    mu = mean(values)
    sigma = standard_deviation(values)
    kept = [v for v in values if not is_outlier(v, mu, sigma, outlier_threshold)]
    return build_distribution(kept if kept else values)


def estimate_percentile(value: float, distribution: Distribution | None) -> float:
    """Interpolate the percentile of ``value`` within a distribution.

    The lookup table anchors 0/10/25/50/75/90/95/99/100 at
    min/p10/.../p99/max and interpolates linearly within a segment.

    Args:
        value: Raw value to place.
        distribution: Reference distribution; None yields 0.

    Returns:
        Percentile in [0, 100]; 50 when the distribution has no spread.
    """
    if distribution is None:
        return 0.0
    low, high = distribution.min, distribution.max
    if high == low:
        return 50.0
    if value <= low:
        return 0.0
    if value >= high:
        return 100.0

    lookup: list[tuple[float, float]] = [(0.0, low)]
    lookup.extend(
        (level, distribution.percentiles[name]) for name, level in PERCENTILE_LEVELS
    )
    lookup.append((100.0, high))

    for (pct1, val1), (pct2, val2) in zip(lookup, lookup[1:]):
        if val1 <= value <= val2:
            if val2 == val1:
                return pct1
            ratio = (value - val1) / (val2 - val1)
            return pct1 + ratio * (pct2 - pct1)

    return 50.0


def coefficient_of_variation(distribution: Distribution) -> float:
    """stdDev / |mean|, or 0 when the mean is 0."""
    if distribution.mean == 0:
        return 0.0
    return abs(distribution.std_dev / distribution.mean)


def correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation; 0 for mismatched, empty, or constant inputs."""
    if len(x) != len(y) or len(x) == 0:
        return 0.0
    ax = np.asarray(x, dtype=float)
    ay = np.asarray(y, dtype=float)
    sx = float(ax.std())
    sy = float(ay.std())
    if sx == 0 or sy == 0:
        return 0.0
    return float(np.mean(((ax - ax.mean()) / sx) * ((ay - ay.mean()) / sy)))


def exponential_smoothing(values: Sequence[float], alpha: float = 0.3) -> list[float]:
    """Exponential moving average seeded with the first value."""
    if not values:
        return []
    smoothed = [float(values[0])]
    for value in values[1:]:
        smoothed.append(alpha * float(value) + (1 - alpha) * smoothed[-1])
    return smoothed


__all__ = [
    "DEFAULT_OUTLIER_THRESHOLD",
    "PERCENTILE_LEVELS",
    "Distribution",
    "build_distribution",
    "build_trimmed_distribution",
    "coefficient_of_variation",
    "correlation",
    "estimate_percentile",
    "exponential_smoothing",
    "is_outlier",
    "mean",
    "sorted_sample",
    "standard_deviation",
    "z_score",
]
