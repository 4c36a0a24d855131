"""Date/time parsing and formatting for HWiNFO sensor logs.

HWiNFO writes the sample date in the locale of the logging machine, so the
same log format can carry ``22.3.2025``, ``3/22/2025`` or ``2025-03-22``. The
helpers below turn a ``(Date, Time)`` cell pair into local epoch milliseconds
and back into display text.
"""

import re
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

YEAR_MIN = 1970
YEAR_MAX = 3000

# Spans at or above this length get the date prefixed on axis tick labels.
TICK_DATE_SPAN_MS = 36 * 60 * 60 * 1000

_DATE_SPLIT_RE = re.compile(r"[./-]")
_YEAR_RE = re.compile(r"^\d{4}$", re.ASCII)
_DIGITS_RE = re.compile(r"^\d+$", re.ASCII)
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})(?:\.(\d{1,3}))?$", re.ASCII)

DateParts = Tuple[int, int, int]


def _split_date(text: str) -> Optional[List[str]]:
    """Return the three numeric pieces of a date string or ``None``."""

    parts = [part.strip() for part in _DATE_SPLIT_RE.split(text)]
    parts = [part for part in parts if part]
    if len(parts) != 3:
        return None
    if not all(_DIGITS_RE.match(part) for part in parts):
        return None
    return parts


def _year_first(parts: Sequence[str]) -> Optional[DateParts]:
    """``YYYY-M-D``."""

    return int(parts[0]), int(parts[1]), int(parts[2])


def _year_last(parts: Sequence[str]) -> Optional[DateParts]:
    """``D.M.YYYY`` or ``M/D/YYYY``, whichever the values allow.

    A first part above 12 can only be a day, likewise for the second part.
    When both are 12 or less the day-first reading wins.
    """

    a, b = int(parts[0]), int(parts[1])
    year = int(parts[2])
    if a > 12:
        return year, b, a
    if b > 12:
        return year, a, b
    return year, b, a


# Keyed by the position of the four digit year. Year-in-the-middle orderings
# are not produced by HWiNFO and stay unparseable.
_DATE_MATCHERS: Tuple[Tuple[int, Callable[[Sequence[str]], Optional[DateParts]]], ...] = (
    (0, _year_first),
    (2, _year_last),
)


def parse_hwinfo_date(text: object) -> Optional[DateParts]:
    """Return ``(year, month, day)`` for a HWiNFO date cell or ``None``."""

    if not isinstance(text, str):
        return None
    text = text.strip()
    if not text:
        return None

    parts = _split_date(text)
    if parts is None:
        return None

    year_index = next(
        (idx for idx, part in enumerate(parts) if _YEAR_RE.match(part)), None
    )
    if year_index is None:
        return None
    if not YEAR_MIN <= int(parts[year_index]) <= YEAR_MAX:
        return None

    for position, matcher in _DATE_MATCHERS:
        if position != year_index:
            continue
        result = matcher(parts)
        if result is None:
            return None
        year, month, day = result
        if not 1 <= month <= 12:
            return None
        if not 1 <= day <= 31:
            return None
        return result
    return None


def parse_hwinfo_time(text: object) -> Optional[Tuple[int, int, int, int]]:
    """Return ``(hour, minute, second, millisecond)`` or ``None``."""

    if not isinstance(text, str):
        return None
    text = text.strip()
    if not text:
        return None

    match = _TIME_RE.match(text)
    if not match:
        return None

    hour, minute, second = (int(match.group(i)) for i in (1, 2, 3))
    fraction = match.group(4)
    millis = int(fraction.ljust(3, "0")) if fraction else 0

    if not 0 <= hour <= 23:
        return None
    if not 0 <= minute <= 59:
        return None
    if not 0 <= second <= 59:
        return None
    return hour, minute, second, millis


def parse_hwinfo_datetime_to_ms(date_text: object, time_text: object) -> Optional[int]:
    """Return local epoch milliseconds for a Date/Time pair, ``None`` if unparseable.

    Days past the end of a month roll over into the next month (``31.2.2025``
    becomes 3 March) instead of failing.
    """

    date_parts = parse_hwinfo_date(date_text)
    if date_parts is None:
        return None
    time_parts = parse_hwinfo_time(time_text)
    if time_parts is None:
        return None

    year, month, day = date_parts
    hour, minute, second, millis = time_parts
    try:
        local = datetime(year, month, 1, hour, minute, second) + timedelta(days=day - 1)
        seconds = local.timestamp()
    except (OverflowError, OSError, ValueError):
        return None
    return int(seconds) * 1000 + millis


def local_datetime(ms: int) -> datetime:
    """Return the naive local datetime for epoch milliseconds."""

    return datetime.fromtimestamp(ms // 1000) + timedelta(milliseconds=ms % 1000)


def format_datetime_for_tooltip(ms: int) -> str:
    """Return ``YYYY-MM-DD HH:MM:SS.mmm`` in local time."""

    local = local_datetime(int(ms))
    return local.strftime("%Y-%m-%d %H:%M:%S") + f".{local.microsecond // 1000:03d}"


def format_time_tick(ms: int, span_ms: int) -> str:
    """Return a compact axis label, adding ``MM-DD`` for multi-day spans."""

    local = local_datetime(int(ms))
    if span_ms >= TICK_DATE_SPAN_MS:
        return local.strftime("%m-%d %H:%M")
    return local.strftime("%H:%M")


__all__ = [
    "format_datetime_for_tooltip",
    "format_time_tick",
    "local_datetime",
    "parse_hwinfo_date",
    "parse_hwinfo_datetime_to_ms",
    "parse_hwinfo_time",
]
