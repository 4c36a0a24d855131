import sys
from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from errors import UnrecognizedFieldError
from series_builder import (
    RawRow,
    build_series,
    fix_last_column,
    parse_cell_value,
    series_to_frame,
)

FIELD = "CPU Package [°C]"


def local_ms(*args: int) -> int:
    return int(datetime(*args).timestamp()) * 1000


def row(date: str, time: str, value: str, field: str = FIELD) -> RawRow:
    return RawRow(date=date, time=time, fields={field: value})


def test_build_series_keeps_row_order_and_metadata() -> None:
    rows = [
        row("22.3.2025", "10:00:00.000", "45.5"),
        row("22.3.2025", "10:00:02.000", "46.0"),
        row("22.3.2025", "10:00:04.000", "47.25"),
    ]

    series = build_series(rows, FIELD)

    assert series.field_key == FIELD
    assert series.base_name == "CPU Package"
    assert series.unit == "°C"
    assert [p.value for p in series.points] == [45.5, 46.0, 47.25]
    base = local_ms(2025, 3, 22, 10)
    assert [p.timestamp_ms for p in series.points] == [base, base + 2000, base + 4000]
    assert series.invalid_time_count == 0
    assert series.out_of_order_count == 0


def test_non_numeric_cells_become_missing() -> None:
    rows = [
        row("22.3.2025", "10:00:00", "45"),
        row("22.3.2025", "10:00:01", ""),
        row("22.3.2025", "10:00:02", "Yes"),
        row("22.3.2025", "10:00:03", "nan"),
        row("22.3.2025", "10:00:04", "46"),
    ]

    series = build_series(rows, FIELD)

    assert [p.value for p in series.points] == [45.0, None, None, None, 46.0]
    assert series.missing_count == 3
    assert series.valid_count == 2


def test_unparseable_time_keeps_slot_and_is_counted() -> None:
    rows = [
        row("garbage", "10:00:00", "1"),
        row("22.3.2025", "10:00:01", "2"),
        row("22.3.2025", "bad", "3"),
        row("22.3.2025", "10:00:03", "4"),
    ]

    series = build_series(rows, FIELD)

    base = local_ms(2025, 3, 22, 10)
    assert len(series.points) == 4
    assert series.invalid_time_count == 2
    assert [p.value for p in series.points] == [None, 2.0, None, 4.0]
    # Leading slot borrows the next valid time, later slots the previous one.
    assert [p.timestamp_ms for p in series.points] == [
        base + 1000,
        base + 1000,
        base + 1000,
        base + 3000,
    ]


def test_no_parseable_timestamps_gives_empty_series() -> None:
    rows = [row("x", "y", "1"), row("", "", "2")]

    series = build_series(rows, FIELD)

    assert series.points == ()
    assert series.invalid_time_count == 2


def test_duplicate_and_backwards_timestamps_are_kept() -> None:
    rows = [
        row("22.3.2025", "10:00:05", "1"),
        row("22.3.2025", "10:00:05", "2"),
        row("22.3.2025", "10:00:01", "3"),
    ]

    series = build_series(rows, FIELD)

    assert [p.value for p in series.points] == [1.0, 2.0, 3.0]
    assert series.out_of_order_count == 1


def test_unknown_field_raises() -> None:
    rows = [row("22.3.2025", "10:00:00", "1")]

    with pytest.raises(UnrecognizedFieldError) as excinfo:
        build_series(rows, "GPU Temperature [°C]")

    assert excinfo.value.field_key == "GPU Temperature [°C]"
    assert "1 row" in str(excinfo.value)


def test_field_missing_from_some_rows_is_missing_there() -> None:
    rows = [
        row("22.3.2025", "10:00:00", "1"),
        RawRow(date="22.3.2025", time="10:00:01", fields={}),
    ]

    series = build_series(rows, FIELD)

    assert [p.value for p in series.points] == [1.0, None]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("12.5", 12.5),
        (" -3 ", -3.0),
        ("\ufeff7", 7.0),
        ('8.25"', 8.25),
        ("1e3", 1000.0),
        ("inf", None),
        ("", None),
        (None, None),
        ("1,5", None),
    ],
)
def test_parse_cell_value(text, expected) -> None:
    assert parse_cell_value(text) == expected


def test_fix_last_column() -> None:
    assert fix_last_column("  test  ") == "test"
    assert fix_last_column("\ufefftest") == "test"
    assert fix_last_column('data"') == "data"
    assert fix_last_column('"quoted"') == '"quoted"'


def test_series_to_frame_uses_local_time_and_nan() -> None:
    rows = [
        row("22.3.2025", "10:00:00.250", "1.5"),
        row("22.3.2025", "10:00:01", "n/a"),
    ]

    frame = series_to_frame(build_series(rows, FIELD))

    assert list(frame.columns) == ["DateTime", "Value"]
    assert frame["DateTime"].iloc[0] == pd.Timestamp("2025-03-22 10:00:00.250")
    assert frame["Value"].iloc[0] == 1.5
    assert pd.isna(frame["Value"].iloc[1])


def test_column_without_any_data_is_unrecognized() -> None:
    rows = [row("22.3.2025", f"10:00:0{i}", value) for i, value in enumerate(["", " ", ""])]

    with pytest.raises(UnrecognizedFieldError) as excinfo:
        build_series(rows, FIELD)

    assert excinfo.value.row_count == 3
