"""Build per-sensor time series from HWiNFO log rows."""

import math
import os
import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from errors import UnrecognizedFieldError
from hwinfo_datetime import local_datetime, parse_hwinfo_datetime_to_ms
from sensor_label import parse_sensor_label

# Debug toggler: set HWLOG_DEBUG=1 to enable verbose parse logs
DEBUG = os.getenv("HWLOG_DEBUG", "0") == "1"


def dprint(*args, **kwargs):
    if DEBUG:
        print(*args, **kwargs)


_ZERO_WIDTH_CHARS = ("\ufeff", "\u200b", "\u200c", "\u200d")


@dataclass(frozen=True)
class RawRow:
    date: str
    time: str
    fields: Mapping[str, str]


@dataclass(frozen=True)
class SamplePoint:
    timestamp_ms: int
    value: Optional[float] = None

    @property
    def is_missing(self) -> bool:
        return self.value is None


@dataclass(frozen=True)
class SensorSeries:
    field_key: str
    base_name: str
    unit: Optional[str]
    points: Tuple[SamplePoint, ...]
    invalid_time_count: int = 0
    out_of_order_count: int = 0

    @property
    def missing_count(self) -> int:
        return sum(1 for point in self.points if point.value is None)

    @property
    def valid_count(self) -> int:
        return len(self.points) - self.missing_count

    def values(self) -> List[Optional[float]]:
        return [point.value for point in self.points]


def _strip_bom_and_zero_width(text: str) -> str:
    for ch in _ZERO_WIDTH_CHARS:
        text = text.replace(ch, "")
    return text


def fix_last_column(text: str) -> str:
    """Clean the final cell of a HWiNFO row.

    - ``"  test  "`` -> ``"test"``
    - ``"\\ufefftest"`` -> ``"test"``
    - ``'data"'`` -> ``"data"`` (unbalanced trailing quote)
    """

    corrected = _strip_bom_and_zero_width(text.strip())
    if corrected.endswith('"') and not corrected.startswith('"'):
        corrected = corrected[:-1]
    return corrected


def _clean_value_text(value: object) -> str:
    if value is None:
        return ""
    text = unicodedata.normalize("NFKC", str(value))
    text = fix_last_column(text)
    return re.sub(r"\s+", "", text)


def parse_cell_value(value: object) -> Optional[float]:
    """Return a finite float for a sensor cell, ``None`` when it is not numeric."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    cleaned = _clean_value_text(value)
    if not cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def _fill_timestamps(resolved: Sequence[Optional[int]]) -> List[Optional[int]]:
    """Give unparseable slots the nearest preceding (else following) timestamp."""

    filled = pd.Series(resolved, dtype="Int64").ffill().bfill()
    return [None if pd.isna(value) else int(value) for value in filled]


def build_series(rows: Iterable[RawRow], field_key: str) -> SensorSeries:
    """Walk ``rows`` and return the series for ``field_key``.

    Unparseable timestamps keep their slot as a missing point and are counted
    in ``invalid_time_count``. Row order is trusted; backwards steps in time
    are counted in ``out_of_order_count`` rather than re-sorted.

    Raises
    ------
    UnrecognizedFieldError
        When no row carries a non-empty cell for ``field_key``; a header
        whose column holds no data is treated as unknown.
    """

    rows = list(rows)
    meta = parse_sensor_label(field_key)

    if not any(_clean_value_text(row.fields.get(field_key)) for row in rows):
        raise UnrecognizedFieldError(field_key, len(rows))

    resolved: List[Optional[int]] = []
    values: List[Optional[float]] = []
    invalid_time_count = 0
    for row in rows:
        ts = parse_hwinfo_datetime_to_ms(row.date, row.time)
        if ts is None:
            invalid_time_count += 1
            dprint(f"[series] unparseable time date={row.date!r} time={row.time!r}")
            values.append(None)
        else:
            values.append(parse_cell_value(row.fields.get(field_key)))
        resolved.append(ts)

    filled = _fill_timestamps(resolved)
    if any(ts is None for ts in filled):
        # No row resolved at all; there is no timeline to hang slots on.
        dprint(f"[series] {field_key!r}: no parseable timestamps in {len(rows)} rows")
        return SensorSeries(
            field_key=field_key,
            base_name=meta.base_name,
            unit=meta.unit,
            points=(),
            invalid_time_count=invalid_time_count,
        )

    points = tuple(
        SamplePoint(timestamp_ms=ts, value=value) for ts, value in zip(filled, values)
    )
    out_of_order = sum(
        1 for prev, cur in zip(points, points[1:]) if cur.timestamp_ms < prev.timestamp_ms
    )
    if out_of_order:
        dprint(f"[series] {field_key!r}: {out_of_order} backwards time steps")

    return SensorSeries(
        field_key=field_key,
        base_name=meta.base_name,
        unit=meta.unit,
        points=points,
        invalid_time_count=invalid_time_count,
        out_of_order_count=out_of_order,
    )


def series_to_frame(series: SensorSeries) -> pd.DataFrame:
    """Return the series as a ``DateTime``/``Value`` frame in local time."""

    columns = ["DateTime", "Value"]
    if not series.points:
        return pd.DataFrame(columns=columns)

    frame = pd.DataFrame(
        {
            "DateTime": pd.to_datetime(
                [local_datetime(p.timestamp_ms) for p in series.points]
            ),
            "Value": [p.value for p in series.points],
        }
    )
    frame["Value"] = pd.to_numeric(frame["Value"], errors="coerce").astype(float)
    return frame[columns]


__all__ = [
    "RawRow",
    "SamplePoint",
    "SensorSeries",
    "build_series",
    "dprint",
    "fix_last_column",
    "parse_cell_value",
    "series_to_frame",
]
