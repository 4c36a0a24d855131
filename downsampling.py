"""Point-budgeted downsampling of sensor series for display.

``lttb`` keeps the visually significant shape of a line using equal point
count buckets. ``average``/``max``/``min`` use equal-width time buckets so
that irregular logging cadence still gives even coverage along the time axis.
"""

import math
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from series_builder import SamplePoint, SensorSeries, dprint

SAMPLING_MODES = ("auto", "none", "lttb", "average", "max", "min")
DEFAULT_TARGET_POINT_COUNT = 2000

_BUCKET_AGGREGATES = {"average": "mean", "max": "max", "min": "min"}


@dataclass(frozen=True)
class SamplingConfig:
    mode: str = "auto"
    target_point_count: int = DEFAULT_TARGET_POINT_COUNT

    def __post_init__(self) -> None:
        if self.mode not in SAMPLING_MODES:
            raise ValueError(f"Unknown sampling mode: {self.mode!r}")
        count = self.target_point_count
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise ValueError(f"target_point_count must be a positive integer, got {count!r}")


def _as_arrays(points: List[SamplePoint]):
    x = np.array([p.timestamp_ms for p in points], dtype=float)
    y = np.array([np.nan if p.value is None else p.value for p in points], dtype=float)
    return x, y, ~np.isnan(y)


def lttb_downsample(points: List[SamplePoint], threshold: int) -> List[SamplePoint]:
    """Largest-Triangle-Three-Buckets over ``points``.

    The first and last points are always kept. Missing values never take part
    in the area computation; a bucket holding only missing values contributes
    a missing point at the timestamp of its central element.
    """

    n = len(points)
    if threshold >= n:
        return list(points)
    if threshold == 1:
        return [points[0]]
    if threshold == 2:
        return [points[0], points[-1]]

    x, y, valid = _as_arrays(points)
    sampled = [points[0]]
    anchor: Optional[int] = 0 if valid[0] else None
    every = (n - 2) / (threshold - 2)

    for i in range(threshold - 2):
        start = int(math.floor(i * every)) + 1
        end = min(int(math.floor((i + 1) * every)) + 1, n - 1)
        end = max(end, start + 1)

        next_start = end
        next_end = min(int(math.floor((i + 2) * every)) + 1, n)
        next_end = max(next_end, next_start + 1)
        next_valid = valid[next_start:next_end]
        if next_valid.any():
            avg_x = float(x[next_start:next_end][next_valid].mean())
            avg_y: Optional[float] = float(y[next_start:next_end][next_valid].mean())
        else:
            avg_x = float(x[next_start:next_end].mean())
            avg_y = None

        candidates = np.flatnonzero(valid[start:end]) + start
        if candidates.size == 0:
            central = start + (end - start - 1) // 2
            sampled.append(SamplePoint(timestamp_ms=points[central].timestamp_ms, value=None))
            continue

        if anchor is None:
            chosen = int(candidates[0])
        else:
            ax, ay = x[anchor], y[anchor]
            ref_y = ay if avg_y is None else avg_y
            area = np.abs(
                (ax - avg_x) * (y[candidates] - ay) - (ax - x[candidates]) * (ref_y - ay)
            )
            chosen = int(candidates[int(np.argmax(area))])

        sampled.append(points[chosen])
        anchor = chosen

    sampled.append(points[-1])
    return sampled


def bucket_downsample(points: List[SamplePoint], bucket_count: int, how: str) -> List[SamplePoint]:
    """Aggregate ``points`` into ``bucket_count`` equal-width time buckets.

    ``how`` is ``average``, ``max`` or ``min``. Every bucket emits one point at
    its midpoint; a bucket without any non-missing sample emits a missing
    point, so pauses in logging stay visible as gaps.
    """

    if how not in _BUCKET_AGGREGATES:
        raise ValueError(f"Unknown bucket aggregate: {how!r}")
    if not points:
        return []

    x, y, _ = _as_arrays(points)
    t0 = float(x.min())
    span = float(x.max()) - t0
    if span <= 0:
        width = 0.0
        bucket_count = 1
        buckets = np.zeros(len(points), dtype=np.int64)
    else:
        width = span / bucket_count
        buckets = np.minimum(np.floor((x - t0) / width), bucket_count - 1).astype(np.int64)

    frame = pd.DataFrame({"bucket": buckets, "value": y})
    aggregated = (
        frame.groupby("bucket", sort=True)["value"]
        .agg(_BUCKET_AGGREGATES[how])
        .reindex(range(bucket_count))
    )

    result: List[SamplePoint] = []
    for bucket, value in aggregated.items():
        midpoint = int(round(t0 + (int(bucket) + 0.5) * width)) if width else int(t0)
        result.append(
            SamplePoint(timestamp_ms=midpoint, value=None if pd.isna(value) else float(value))
        )
    return result


def reduce_points(points: Iterable[SamplePoint], config: SamplingConfig) -> List[SamplePoint]:
    """Return at most ``config.target_point_count`` points for display.

    Series at or under the budget, and every series in ``none`` mode, pass
    through unchanged.
    """

    points = list(points)
    target = config.target_point_count
    if config.mode == "none" or len(points) <= target:
        return points

    dprint(f"[sampling] {config.mode}: {len(points)} -> <= {target} points")
    if config.mode in ("auto", "lttb"):
        return lttb_downsample(points, target)
    return bucket_downsample(points, target, config.mode)


def reduce_series(series: SensorSeries, config: SamplingConfig) -> SensorSeries:
    """Return a new series holding the reduced points of ``series``."""

    reduced = reduce_points(series.points, config)
    if len(reduced) == len(series.points):
        return series
    return replace(series, points=tuple(reduced))


__all__ = [
    "DEFAULT_TARGET_POINT_COUNT",
    "SAMPLING_MODES",
    "SamplingConfig",
    "bucket_downsample",
    "lttb_downsample",
    "reduce_points",
    "reduce_series",
]
