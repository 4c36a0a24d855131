"""Group sensor columns into a nested tree from a YAML configuration.

Example configuration::

    CPU:
      fields: ["CPU Package [°C]"]
      Cores:
        field_pattern: "^Core \\d+ Clock"
    Network:
      field_pattern: "^(Download|Upload)"

Each group lists explicit ``fields`` and/or a regular expression
``field_pattern``; any other mapping-valued key is a subgroup. Explicit field
names win over patterns, and patterns are tried in file order with a parent's
pattern ahead of its subgroups'.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Tuple, Union

import yaml

from series_builder import dprint

GroupPath = Tuple[str, ...]

_RESERVED_KEYS = ("fields", "field_pattern")


@dataclass(frozen=True)
class FieldGroup:
    fields: Tuple[str, ...] = ()
    field_pattern: Optional[str] = None
    children: Dict[str, "FieldGroup"] = field(default_factory=dict)


def _parse_group(name: str, raw: object) -> FieldGroup:
    if raw is None:
        return FieldGroup()
    if not isinstance(raw, Mapping):
        raise ValueError(f"Group {name!r} must be a mapping")

    fields = raw.get("fields") or []
    if not isinstance(fields, list):
        raise ValueError(f"Group {name!r}: 'fields' must be a list")
    pattern = raw.get("field_pattern")
    if pattern is not None and not isinstance(pattern, str):
        raise ValueError(f"Group {name!r}: 'field_pattern' must be a string")

    children = {
        str(key): _parse_group(f"{name}.{key}", value)
        for key, value in raw.items()
        if key not in _RESERVED_KEYS
    }
    return FieldGroup(fields=tuple(str(f) for f in fields), field_pattern=pattern, children=children)


def parse_field_groups(raw: object) -> Dict[str, FieldGroup]:
    """Return top-level groups from decoded YAML."""

    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError("Field group config root must be a mapping")
    return {str(name): _parse_group(str(name), value) for name, value in raw.items()}


class FieldGrouper:
    """Resolve sensor headers to their group path."""

    def __init__(self, groups: Mapping[str, FieldGroup]):
        self.groups = dict(groups)
        self._static: Dict[str, GroupPath] = {}
        self._patterns: List[Tuple[Pattern[str], GroupPath]] = []
        for name, group in self.groups.items():
            self._collect(group, (name,))

    def _collect(self, group: FieldGroup, path: GroupPath) -> None:
        for field_name in group.fields:
            self._static[field_name] = path
        if group.field_pattern:
            try:
                self._patterns.append((re.compile(group.field_pattern), path))
            except re.error as exc:
                raise ValueError(
                    f"Invalid field_pattern for group {'.'.join(path)!r}: {exc}"
                ) from exc
        for sub_name, sub_group in group.children.items():
            self._collect(sub_group, path + (sub_name,))

    def group_path(self, header: str) -> Optional[GroupPath]:
        """Return the group path for ``header`` or ``None`` when ungrouped."""

        if header in self._static:
            return self._static[header]
        for pattern, path in self._patterns:
            if pattern.search(header):
                return path
        return None

    def assign(self, headers: Iterable[str]) -> Dict[str, GroupPath]:
        """Map every grouped header to its path; ungrouped headers are left out."""

        assigned: Dict[str, GroupPath] = {}
        for header in headers:
            path = self.group_path(header)
            if path is None:
                dprint(f"[groups] no group for {header!r}")
                continue
            assigned[header] = path
        return assigned

    def grouped(self, headers: Iterable[str]) -> Dict[GroupPath, List[str]]:
        """Return headers bucketed by group path, keeping header order."""

        result: Dict[GroupPath, List[str]] = {}
        for header, path in self.assign(headers).items():
            result.setdefault(path, []).append(header)
        return result


def load_field_groups(path: Union[str, Path]) -> FieldGrouper:
    """Load a YAML group configuration file."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Field group config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ValueError(f"Failed to parse field group config: {path}") from exc
    return FieldGrouper(parse_field_groups(raw))


__all__ = [
    "FieldGroup",
    "FieldGrouper",
    "load_field_groups",
    "parse_field_groups",
]
