"""Turn a sensor series plus chart preferences into a render payload."""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Hashable, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from axis_scale import AxisPlan, plan_axis_scale
from chart_prefs import ChartPrefs
from downsampling import reduce_points
from series_builder import RawRow, SamplePoint, SensorSeries, build_series, dprint
from thresholds import RUN_COLUMNS, classify_points, compute_warning_runs

DEFAULT_CACHE_ENTRIES = 16


@dataclass(frozen=True)
class RenderMeta:
    valid_count: int
    missing_count: int
    invalid_time_count: int
    range: Optional[Tuple[float, float]]
    out_of_order_count: int = 0
    source_count: int = 0


@dataclass(frozen=True)
class RenderSeries:
    field_key: str
    base_name: str
    unit: Optional[str]
    main: List[SamplePoint]
    below_min: List[SamplePoint]
    above_max: List[SamplePoint]
    meta: RenderMeta
    axis: AxisPlan
    smooth: bool = False
    show_area: bool = True
    connect_nulls: bool = False
    # StartMs, EndMs, Points, Kind per out-of-range stretch of the full series.
    warning_runs: pd.DataFrame = field(
        default_factory=lambda: pd.DataFrame(columns=RUN_COLUMNS), compare=False
    )


def value_range(points: Iterable[SamplePoint]) -> Optional[Tuple[float, float]]:
    """Return ``(min, max)`` over the non-missing values, ``None`` if there are none."""

    values = [p.value for p in points if p.value is not None]
    if not values:
        return None
    return min(values), max(values)


def render_series(series: SensorSeries, prefs: ChartPrefs) -> RenderSeries:
    """Downsample, classify and plan the axis for ``series``.

    Counts, range, warning runs and the axis decision are taken from the
    full series so that downsampling never hides a short excursion or a
    non-positive value from the log check.
    """

    reduced = reduce_points(series.points, prefs.sampling)
    split = classify_points(reduced, prefs.warn)
    axis = plan_axis_scale(series.values(), prefs.y_axis.scale)
    runs = compute_warning_runs(series.points, prefs.warn)
    if axis.fallback_applied:
        dprint(f"[render] {series.field_key!r}: log scale unusable, falling back to linear")

    meta = RenderMeta(
        valid_count=series.valid_count,
        missing_count=series.missing_count,
        invalid_time_count=series.invalid_time_count,
        range=value_range(series.points),
        out_of_order_count=series.out_of_order_count,
        source_count=len(series.points),
    )
    return RenderSeries(
        field_key=series.field_key,
        base_name=series.base_name,
        unit=series.unit,
        main=split.main,
        below_min=split.below_min,
        above_max=split.above_max,
        meta=meta,
        axis=axis,
        smooth=prefs.smooth,
        show_area=prefs.show_area,
        connect_nulls=prefs.connect_nulls,
        warning_runs=runs,
    )


def build_render_series(
    rows: Iterable[RawRow], field_key: str, prefs: ChartPrefs
) -> RenderSeries:
    """Build the series for ``field_key`` from ``rows`` and render it."""

    return render_series(build_series(rows, field_key), prefs)


def bridge_missing(points: Sequence[SamplePoint]) -> List[SamplePoint]:
    """Return ``points`` with interior missing values linearly interpolated in time.

    Leading and trailing missing points have no neighbour on one side and stay
    missing. This is the ``connect_nulls`` view for renderers that cannot
    bridge gaps on their own.
    """

    if not points:
        return []

    x = np.array([p.timestamp_ms for p in points], dtype=float)
    y = np.array([np.nan if p.value is None else p.value for p in points], dtype=float)
    valid = ~np.isnan(y)
    valid_idx = np.flatnonzero(valid)
    if valid_idx.size < 2:
        return list(points)

    inside = np.zeros(len(points), dtype=bool)
    inside[valid_idx[0] : valid_idx[-1] + 1] = True
    targets = inside & ~valid
    if not targets.any():
        return list(points)

    order = np.argsort(x[valid], kind="stable")
    y[targets] = np.interp(x[targets], x[valid][order], y[valid][order])
    return [
        SamplePoint(timestamp_ms=p.timestamp_ms, value=None if np.isnan(v) else float(v))
        for p, v in zip(points, y)
    ]


class RenderRequestGate:
    """Hand out request tokens and accept only results for the newest one.

    Callers tag each render computation with :meth:`issue` and check
    :meth:`is_current` before applying the result; anything superseded by a
    later request is dropped.
    """

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest


class RenderCache:
    """Small LRU of render results keyed by field, dataset and preferences."""

    def __init__(self, max_entries: int = DEFAULT_CACHE_ENTRIES) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: "OrderedDict[Tuple[str, Hashable, ChartPrefs], RenderSeries]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_render(
        self,
        series: SensorSeries,
        prefs: ChartPrefs,
        dataset_token: Hashable = None,
    ) -> RenderSeries:
        key = (series.field_key, dataset_token, prefs)
        cached = self._entries.get(key)
        if cached is not None:
            self._entries.move_to_end(key)
            return cached

        result = render_series(series, prefs)
        self._entries[key] = result
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return result

    def clear(self) -> None:
        self._entries.clear()


__all__ = [
    "RenderCache",
    "RenderMeta",
    "RenderRequestGate",
    "RenderSeries",
    "bridge_missing",
    "build_render_series",
    "render_series",
    "value_range",
]
