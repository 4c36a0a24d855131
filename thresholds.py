"""Warning threshold classification for sensor points."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from series_builder import SamplePoint

RUN_COLUMNS = ["StartMs", "EndMs", "Points", "Kind"]


@dataclass(frozen=True)
class WarnConfig:
    enabled: bool = False
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True)
class ThresholdSplit:
    main: List[SamplePoint]
    below_min: List[SamplePoint]
    above_max: List[SamplePoint]


def _is_below(value: Optional[float], lo: Optional[float]) -> bool:
    return value is not None and lo is not None and value < lo


def _is_above(value: Optional[float], hi: Optional[float]) -> bool:
    return value is not None and hi is not None and value > hi


def is_out_of_range(value: Optional[float], lo: Optional[float], hi: Optional[float]) -> bool:
    """Return True when the value is strictly outside the provided bounds."""

    return _is_below(value, lo) or _is_above(value, hi)


def classify_points(points: Sequence[SamplePoint], warn: WarnConfig) -> ThresholdSplit:
    """Copy out-of-range points into overlay series.

    ``main`` always keeps every point, missing and boundary-equal ones
    included, so the primary line stays continuous under the overlays.
    """

    main = list(points)
    if not warn.enabled:
        return ThresholdSplit(main=main, below_min=[], above_max=[])

    below = [p for p in main if _is_below(p.value, warn.min)]
    above = [p for p in main if _is_above(p.value, warn.max)]
    return ThresholdSplit(main=main, below_min=below, above_max=above)


def compute_warning_runs(points: Sequence[SamplePoint], warn: WarnConfig) -> pd.DataFrame:
    """Return a DataFrame describing contiguous out-of-range runs.

    A run is a stretch of consecutive points on the same side of the bounds.
    Missing points end a run. ``EndMs`` is the timestamp of the first point
    after the run when there is one, otherwise the run's last timestamp.
    """

    if not warn.enabled or not points:
        return pd.DataFrame(columns=RUN_COLUMNS)

    values = np.array(
        [np.nan if p.value is None else p.value for p in points], dtype=float
    )
    times = np.array([p.timestamp_ms for p in points], dtype=np.int64)
    n = len(values)

    # 0 = in range or missing, -1 = below min, 1 = above max
    side = np.zeros(n, dtype=np.int8)
    with np.errstate(invalid="ignore"):
        if warn.min is not None:
            side[values < warn.min] = -1
        if warn.max is not None:
            side[values > warn.max] = 1
    if not np.any(side):
        return pd.DataFrame(columns=RUN_COLUMNS)

    flagged = np.flatnonzero(side)
    breaks = np.where((np.diff(flagged) > 1) | (np.diff(side[flagged]) != 0))[0] + 1
    runs = np.split(flagged, breaks)

    events: List[Dict[str, object]] = []
    for run in runs:
        start_i = int(run[0])
        end_i = int(run[-1])
        next_i = end_i + 1
        end_ms = int(times[next_i]) if next_i < n else int(times[end_i])
        events.append(
            {
                "StartMs": int(times[start_i]),
                "EndMs": end_ms,
                "Points": len(run),
                "Kind": "below" if side[start_i] < 0 else "above",
            }
        )

    return pd.DataFrame(events, columns=RUN_COLUMNS)


__all__ = [
    "ThresholdSplit",
    "WarnConfig",
    "classify_points",
    "compute_warning_runs",
    "is_out_of_range",
]
