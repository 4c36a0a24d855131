"""Y-axis scale planning."""

from dataclasses import dataclass
from typing import Iterable, Optional

Y_AXIS_SCALES = ("linear", "log")


@dataclass(frozen=True)
class AxisConfig:
    scale: str = "linear"

    def __post_init__(self) -> None:
        if self.scale not in Y_AXIS_SCALES:
            raise ValueError(f"Unknown y-axis scale: {self.scale!r}")


@dataclass(frozen=True)
class AxisPlan:
    scale: str
    fallback_applied: bool


def plan_axis_scale(values: Iterable[Optional[float]], requested: str) -> AxisPlan:
    """Return the scale to apply for ``values`` given the ``requested`` one.

    A log axis needs every value to be positive. Non-positive data falls back
    to linear with ``fallback_applied`` set so the caller can tell the user.
    Empty or all-missing data renders linear without flagging a fallback.
    """

    if requested not in Y_AXIS_SCALES:
        raise ValueError(f"Unknown y-axis scale: {requested!r}")
    if requested == "linear":
        return AxisPlan(scale="linear", fallback_applied=False)

    seen_value = False
    for value in values:
        if value is None:
            continue
        if value <= 0:
            return AxisPlan(scale="linear", fallback_applied=True)
        seen_value = True

    if not seen_value:
        return AxisPlan(scale="linear", fallback_applied=False)
    return AxisPlan(scale="log", fallback_applied=False)


__all__ = ["AxisConfig", "AxisPlan", "Y_AXIS_SCALES", "plan_axis_scale"]
