"""Chart preferences as an immutable value with explicit JSON persistence.

Preferences are plain input to the render pipeline. Changing one returns a new
``ChartPrefs``; nothing is written until the caller invokes :func:`save_prefs`.
"""

import json
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from axis_scale import Y_AXIS_SCALES, AxisConfig
from downsampling import SAMPLING_MODES, SamplingConfig
from series_builder import dprint
from thresholds import WarnConfig

PREFS_FILE_NAME = "chart-prefs.json"
PREFS_VERSION = 1


@dataclass(frozen=True)
class ChartPrefs:
    smooth: bool = False
    show_area: bool = True
    connect_nulls: bool = False
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    y_axis: AxisConfig = field(default_factory=AxisConfig)
    warn: WarnConfig = field(default_factory=WarnConfig)

    def replace(self, **changes: Any) -> "ChartPrefs":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": PREFS_VERSION,
            "smooth": self.smooth,
            "showArea": self.show_area,
            "connectNulls": self.connect_nulls,
            "sampling": {
                "mode": self.sampling.mode,
                "targetPointCount": self.sampling.target_point_count,
            },
            "yAxis": {"scale": self.y_axis.scale},
            "warn": asdict(self.warn),
        }


def _bool_or(value: object, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _number_or_none(value: object) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _parse_sampling(raw: object, default: SamplingConfig) -> SamplingConfig:
    # v1 stored the bare mode string under "sampling".
    if isinstance(raw, str):
        raw = {"mode": raw}
    if not isinstance(raw, Mapping):
        return default

    mode = raw.get("mode")
    if mode not in SAMPLING_MODES:
        mode = default.mode
    count = raw.get("targetPointCount")
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        count = default.target_point_count
    return SamplingConfig(mode=mode, target_point_count=count)


def _parse_y_axis(raw: Mapping[str, Any], default: AxisConfig) -> AxisConfig:
    y_axis = raw.get("yAxis")
    scale = y_axis.get("scale") if isinstance(y_axis, Mapping) else raw.get("yAxisScale")
    if scale not in Y_AXIS_SCALES:
        return default
    return AxisConfig(scale=scale)


def _parse_warn(raw: object, default: WarnConfig) -> WarnConfig:
    if not isinstance(raw, Mapping):
        return default
    return WarnConfig(
        enabled=_bool_or(raw.get("enabled"), default.enabled),
        min=_number_or_none(raw.get("min")),
        max=_number_or_none(raw.get("max")),
    )


def prefs_from_dict(raw: object) -> ChartPrefs:
    """Build preferences from decoded JSON, ignoring ill-typed entries."""

    defaults = ChartPrefs()
    if not isinstance(raw, Mapping):
        return defaults

    return ChartPrefs(
        smooth=_bool_or(raw.get("smooth"), defaults.smooth),
        show_area=_bool_or(raw.get("showArea"), defaults.show_area),
        connect_nulls=_bool_or(raw.get("connectNulls"), defaults.connect_nulls),
        sampling=_parse_sampling(raw.get("sampling"), defaults.sampling),
        y_axis=_parse_y_axis(raw, defaults.y_axis),
        warn=_parse_warn(raw.get("warn"), defaults.warn),
    )


def load_prefs(path: Union[str, Path]) -> ChartPrefs:
    """Read preferences from ``path``; missing or corrupt files give defaults."""

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ChartPrefs()

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        dprint(f"[prefs] ignoring unreadable {path}: {exc}")
        return ChartPrefs()
    return prefs_from_dict(raw)


def save_prefs(prefs: ChartPrefs, path: Union[str, Path]) -> Path:
    """Write ``prefs`` to ``path`` as JSON and return the path."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(prefs.to_dict(), indent=2), encoding="utf-8")
    tmp_path.replace(path)
    return path


__all__ = ["ChartPrefs", "load_prefs", "prefs_from_dict", "save_prefs"]
