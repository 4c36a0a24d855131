import math
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from downsampling import (
    SamplingConfig,
    bucket_downsample,
    lttb_downsample,
    reduce_points,
    reduce_series,
)
from series_builder import SamplePoint, SensorSeries


def make_points(values, start: int = 0, step: int = 1000):
    return [SamplePoint(timestamp_ms=start + i * step, value=v) for i, v in enumerate(values)]


@pytest.mark.parametrize("mode", ["auto", "none", "lttb", "average", "max", "min"])
def test_at_or_under_budget_is_unchanged(mode: str) -> None:
    points = make_points([1.0, 2.0, None, 4.0])

    assert reduce_points(points, SamplingConfig(mode=mode, target_point_count=4)) == points
    assert reduce_points(points, SamplingConfig(mode=mode, target_point_count=10)) == points


@pytest.mark.parametrize("mode", ["auto", "lttb", "average", "max", "min"])
@pytest.mark.parametrize("target", [1, 2, 3, 7, 50])
def test_over_budget_never_exceeds_target(mode: str, target: int) -> None:
    values = [math.sin(i / 10.0) * 10 if i % 17 else None for i in range(500)]
    points = make_points(values)

    reduced = reduce_points(points, SamplingConfig(mode=mode, target_point_count=target))

    assert 0 < len(reduced) <= target


def test_none_mode_passes_everything_through() -> None:
    points = make_points(range(100))

    assert reduce_points(points, SamplingConfig(mode="none", target_point_count=5)) == points


def test_lttb_keeps_endpoints_and_spike() -> None:
    values = [0.0] * 100
    values[37] = 50.0
    points = make_points(values)

    reduced = lttb_downsample(points, 10)

    assert len(reduced) == 10
    assert reduced[0] == points[0]
    assert reduced[-1] == points[-1]
    assert points[37] in reduced


def test_lttb_output_is_time_ordered() -> None:
    points = make_points([float(i % 7) for i in range(200)])

    reduced = lttb_downsample(points, 20)

    stamps = [p.timestamp_ms for p in reduced]
    assert stamps == sorted(stamps)


def test_lttb_all_missing_bucket_yields_missing_point() -> None:
    # 12 points, threshold 5 -> interior buckets [1, 4), [4, 7), [7, 11).
    values = [1.0, 2.0, 3.0, 4.0, None, None, None, 5.0, 6.0, 7.0, 8.0, 9.0]
    points = make_points(values)

    reduced = lttb_downsample(points, 5)

    assert len(reduced) == 5
    missing = [p for p in reduced if p.value is None]
    assert len(missing) == 1
    assert missing[0].timestamp_ms == points[5].timestamp_ms


def test_auto_behaves_as_lttb_above_budget() -> None:
    points = make_points([float((i * 7) % 13) for i in range(300)])

    auto = reduce_points(points, SamplingConfig(mode="auto", target_point_count=30))
    lttb = reduce_points(points, SamplingConfig(mode="lttb", target_point_count=30))

    assert auto == lttb


def test_bucket_average_uses_equal_time_buckets() -> None:
    # Dense samples in the first half, sparse in the second.
    points = make_points([1.0, 3.0, 5.0, 7.0], start=0, step=100)
    points += [SamplePoint(timestamp_ms=1000, value=10.0)]

    reduced = bucket_downsample(points, 2, "average")

    assert [p.timestamp_ms for p in reduced] == [250, 750]
    assert [p.value for p in reduced] == [4.0, 10.0]


def test_bucket_max_and_min() -> None:
    points = make_points([1.0, 9.0, 4.0, 2.0, 8.0, 3.0])

    high = reduce_points(points, SamplingConfig(mode="max", target_point_count=2))
    low = reduce_points(points, SamplingConfig(mode="min", target_point_count=2))

    assert [p.value for p in high] == [9.0, 8.0]
    assert [p.value for p in low] == [1.0, 2.0]


def test_bucket_with_only_missing_values_is_missing() -> None:
    points = make_points([1.0, 2.0, None, None, 5.0, 6.0])

    reduced = bucket_downsample(points, 3, "average")

    assert [p.value for p in reduced] == [1.5, None, 5.5]


def test_empty_time_bucket_emits_missing_point() -> None:
    # Logging paused between t=20 and t=1000.
    points = [
        SamplePoint(0, 1.0),
        SamplePoint(10, 2.0),
        SamplePoint(20, 3.0),
        SamplePoint(1000, 4.0),
    ]

    reduced = bucket_downsample(points, 3, "average")

    assert [p.timestamp_ms for p in reduced] == [167, 500, 833]
    assert [p.value for p in reduced] == [2.0, None, 4.0]
    assert reduced[1].is_missing


def test_zero_time_span_collapses_to_one_bucket() -> None:
    points = [SamplePoint(5000, v) for v in (1.0, 2.0, 6.0)]

    reduced = reduce_points(points, SamplingConfig(mode="average", target_point_count=2))

    assert reduced == [SamplePoint(5000, 3.0)]


def test_reduce_series_returns_new_series() -> None:
    series = SensorSeries(
        field_key="Fan [RPM]",
        base_name="Fan",
        unit="RPM",
        points=tuple(make_points(range(50))),
    )

    reduced = reduce_series(series, SamplingConfig(mode="lttb", target_point_count=10))

    assert len(reduced.points) == 10
    assert reduced.unit == "RPM"
    assert len(series.points) == 50


@pytest.mark.parametrize(
    "kwargs",
    [
        {"mode": "median"},
        {"target_point_count": 0},
        {"target_point_count": -5},
        {"target_point_count": 2.5},
        {"target_point_count": True},
    ],
)
def test_invalid_config_is_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        SamplingConfig(**kwargs)
