"""HWiNFO CSV ingestion.

This module turns a HWiNFO sensor log export into :class:`RawRow` objects for
``series_builder``. HWiNFO logs have a few quirks handled here:

* the file may start with a BOM and contain stray NUL bytes,
* sensor names repeat across devices, so headers are made unique by
  numbering repeats (``"Core Clock #1 [MHz]"``),
* rows end with a trailing comma, producing an unnamed empty column,
* the footer repeats the header row (and a row of device names) after the
  last sample.
"""

import io
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from series_builder import RawRow, dprint, fix_last_column
from sensor_label import SensorLabelMeta, sensor_catalog

DATE_COLUMN_CANDIDATES = ("Date", "Datum", "日期")
TIME_COLUMN_CANDIDATES = ("Time", "Zeit", "时间")


@dataclass(frozen=True)
class HwinfoLog:
    headers: Tuple[str, ...]
    date_column: str
    time_column: str
    rows: Tuple[RawRow, ...]

    @property
    def sensor_fields(self) -> List[str]:
        return [h for h in self.headers if h not in (self.date_column, self.time_column)]

    def sensor_catalog(self) -> List[SensorLabelMeta]:
        return sensor_catalog(self.sensor_fields, exclude=(self.date_column, self.time_column))


def _read_text(source: Union[str, "io.IOBase"]) -> str:
    """Read a CSV path or file object as text handling BOMs and stray null bytes."""

    if isinstance(source, str):
        with open(source, "rb") as file:
            raw = file.read()
    else:
        raw = source.read()
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    cleaned = raw.replace(b"\x00", b"")
    return cleaned.decode("utf-8-sig", errors="replace")


_TRAILING_UNIT_RE = re.compile(r"^(.*?)(\s*\[[^\]]*\])\s*$", re.DOTALL)


def _numbered(name: str, n: int) -> str:
    """Insert ``' #n'`` ahead of a trailing ``[unit]`` group so the unit stays parseable."""

    match = _TRAILING_UNIT_RE.match(name)
    if match and match.group(1).strip():
        return f"{match.group(1)} #{n}{match.group(2)}"
    return f"{name} #{n}"


def make_unique(columns: Sequence[str]) -> List[str]:
    """Make duplicate column names unique by numbering repeats.

    ``"Core Clock [MHz]"`` repeated becomes ``"Core Clock #1 [MHz]"``.
    """

    seen: Dict[str, int] = {}
    taken = set()
    out: List[str] = []
    for column in columns:
        name = str(column).strip()
        if name not in seen:
            seen[name] = 0
            candidate = name
        else:
            candidate = name
            while candidate in taken:
                seen[name] += 1
                candidate = _numbered(name, seen[name])
        taken.add(candidate)
        out.append(candidate)
    return out


def _select_first_available(headers: Sequence[str], candidates: Sequence[str]) -> Optional[str]:
    """Return the first header matching one of ``candidates`` case-insensitively."""

    normalized = {header.strip().lower(): header for header in headers}
    for candidate in candidates:
        if candidate.lower() in normalized:
            return normalized[candidate.lower()]
    return None


def _frame_to_rows(
    df: pd.DataFrame, headers: List[str], date_col: str, time_col: str
) -> List[RawRow]:
    date_idx = headers.index(date_col)
    time_idx = headers.index(time_col)
    sensor_idx = [(i, h) for i, h in enumerate(headers) if i not in (date_idx, time_idx)]

    rows: List[RawRow] = []
    for record in df.itertuples(index=False, name=None):
        date_text = str(record[date_idx]).strip()
        # Footer repeats the header row; it is not a sample.
        if date_text.lower() == date_col.lower():
            continue
        fields = {header: str(record[i]) for i, header in sensor_idx}
        rows.append(RawRow(date=date_text, time=str(record[time_idx]).strip(), fields=fields))
    return rows


def read_hwinfo_csv(source: Union[str, "io.IOBase"]) -> HwinfoLog:
    """Parse a HWiNFO CSV log into headers and raw rows.

    Parameters
    ----------
    source:
        Path to the CSV file, or a binary/text file object.

    Returns
    -------
    HwinfoLog
        Unique headers, the detected Date/Time column names and one
        :class:`RawRow` per sample line.

    Raises
    ------
    ValueError
        When the file cannot be read as CSV or lacks Date/Time columns.
    """

    text = _read_text(source)
    if not text.strip():
        raise ValueError("HWiNFO log is empty")

    try:
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            engine="python",
            on_bad_lines="skip",
            dtype=str,
            keep_default_na=False,
            index_col=False,
        )
    except Exception as exc:
        raise ValueError("Failed to read HWiNFO CSV") from exc

    if df.empty:
        raise ValueError("HWiNFO log has no header row")

    raw_headers = [fix_last_column(str(col)) for col in df.iloc[0].tolist()]
    body = df.iloc[1:].reset_index(drop=True)

    # Trailing comma on every line leaves an unnamed empty column at the end.
    keep = [i for i, name in enumerate(raw_headers) if name]
    headers = make_unique([raw_headers[i] for i in keep])
    body = body.iloc[:, keep].fillna("").copy()
    if not body.empty:
        last = body.columns[-1]
        body[last] = body[last].map(fix_last_column)

    date_col = _select_first_available(headers, DATE_COLUMN_CANDIDATES)
    time_col = _select_first_available(headers, TIME_COLUMN_CANDIDATES)
    if date_col is None or time_col is None:
        raise ValueError("HWiNFO log is missing Date or Time columns")

    rows = _frame_to_rows(body, headers, date_col, time_col)
    dprint(f"[ingest] {len(headers)} columns, {len(rows)} rows")
    return HwinfoLog(
        headers=tuple(headers),
        date_column=date_col,
        time_column=time_col,
        rows=tuple(rows),
    )


__all__ = ["HwinfoLog", "make_unique", "read_hwinfo_csv"]
