"""Sensor column labels and unit-aware value formatting."""

import decimal
import math
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from babel.numbers import format_decimal

DEFAULT_LOCALE = "en_US"
NO_VALUE_TEXT = "-"

# Unit is taken from the LAST trailing "[...]" group only.
_LABEL_RE = re.compile(r"^(.*?)(?:\s*\[([^\]]*)\])\s*$", re.DOTALL)

_TEMPERATURE_UNITS = {"℃", "°C", "°F"}
_BYTE_UNIT_RE = re.compile(r"^(B|KB|KiB|MB|MiB|GB|GiB|TB|TiB)$", re.IGNORECASE)
_GIGABYTE_UNIT_RE = re.compile(r"^(GB|GiB)$", re.IGNORECASE)
_RATE_UNIT_RE = re.compile(r"/(s|sec)$", re.IGNORECASE)


@dataclass(frozen=True)
class SensorLabelMeta:
    raw: str
    base_name: str
    unit: Optional[str]


@dataclass(frozen=True)
class UnitFormatRule:
    max_fraction_digits: int
    grouping: bool = True


# Exact unit matches, checked before the pattern based rules.
UNIT_RULES = {
    "%": UnitFormatRule(1, grouping=False),
    "℃": UnitFormatRule(1, grouping=False),
    "°C": UnitFormatRule(1, grouping=False),
    "°F": UnitFormatRule(1, grouping=False),
    "V": UnitFormatRule(3, grouping=False),
    "A": UnitFormatRule(3, grouping=False),
    "W": UnitFormatRule(1),
    "RPM": UnitFormatRule(0),
    "MHz": UnitFormatRule(0),
    "kHz": UnitFormatRule(0),
    "GHz": UnitFormatRule(1),
}


def parse_sensor_label(raw: object) -> SensorLabelMeta:
    """Split a header such as ``"下载总计 [MB]"`` into base name and unit."""

    text = "" if raw is None else str(raw)
    match = _LABEL_RE.match(text)
    if not match:
        return SensorLabelMeta(raw=text, base_name=text.strip(), unit=None)

    base_name = (match.group(1) or "").strip()
    unit_text = (match.group(2) or "").strip()
    return SensorLabelMeta(
        raw=text,
        base_name=base_name or text.strip(),
        unit=unit_text or None,
    )


def sensor_catalog(
    headers: Iterable[str], exclude: Tuple[str, ...] = ("Date", "Time")
) -> List[SensorLabelMeta]:
    """Return label metadata for every sensor column in ``headers``."""

    skipped = {name.strip().lower() for name in exclude}
    catalog: List[SensorLabelMeta] = []
    for header in headers:
        if str(header).strip().lower() in skipped:
            continue
        catalog.append(parse_sensor_label(header))
    return catalog


def pick_format_rule(unit: Optional[str], value: float) -> UnitFormatRule:
    """Return the precision/grouping rule for ``unit``, falling back on magnitude."""

    unit_text = (unit or "").strip()

    rule = UNIT_RULES.get(unit_text)
    if rule is not None:
        return rule

    if _BYTE_UNIT_RE.match(unit_text):
        if _GIGABYTE_UNIT_RE.match(unit_text):
            return UnitFormatRule(1)
        return UnitFormatRule(0)

    if _RATE_UNIT_RE.search(unit_text):
        return UnitFormatRule(1)

    magnitude = abs(value)
    if magnitude == 0:
        return UnitFormatRule(0)
    if magnitude < 10:
        return UnitFormatRule(2)
    if magnitude < 100:
        return UnitFormatRule(1)
    return UnitFormatRule(0)


def _coerce_number(value: object) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def format_value_by_unit(
    value: object, unit: Optional[str], locale: str = DEFAULT_LOCALE
) -> str:
    """Format ``value`` using the precision rules for ``unit``.

    Non-numeric and non-finite input yields ``NO_VALUE_TEXT``.
    """

    number = _coerce_number(value)
    if number is None:
        return NO_VALUE_TEXT

    rule = pick_format_rule(unit, number)
    pattern = "#,##0"
    if rule.max_fraction_digits:
        pattern += "." + "#" * rule.max_fraction_digits

    with decimal.localcontext() as ctx:
        ctx.rounding = decimal.ROUND_HALF_UP
        return format_decimal(
            number,
            format=pattern,
            locale=locale.replace("-", "_"),
            group_separator=rule.grouping,
        )


def format_value_with_unit(
    value: object, unit: Optional[str], locale: str = DEFAULT_LOCALE
) -> str:
    """Format ``value`` and append ``unit``.

    ``%``, degree symbols and ``℃`` attach directly; other units get a space.
    """

    text = format_value_by_unit(value, unit, locale=locale)
    if text == NO_VALUE_TEXT:
        return text

    unit_text = (unit or "").strip()
    if not unit_text:
        return text
    if unit_text == "%" or unit_text.startswith("°") or unit_text == "℃":
        return f"{text}{unit_text}"
    return f"{text} {unit_text}"


__all__ = [
    "SensorLabelMeta",
    "UnitFormatRule",
    "format_value_by_unit",
    "format_value_with_unit",
    "parse_sensor_label",
    "pick_format_rule",
    "sensor_catalog",
]
