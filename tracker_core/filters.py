"""Filter + multi-criteria sort over entity collections of any shape.

Entities may be dataclasses or plain mappings. Inputs are never mutated;
``query`` always returns a new list.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Tuple

from pyuca import Collator

from tracker_core.data import to_number, to_timestamp

Direction = Literal["asc", "desc"]

_DIRECTIONS = {"asc": "asc", "ascending": "asc", "desc": "desc", "descending": "desc"}
_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
_COLLATOR = Collator()


@dataclass(frozen=True)
class SortSpec:
    key: str
    direction: Direction = "asc"


@dataclass(frozen=True)
class FilterSpec:
    equals: Dict[str, Any] = field(default_factory=dict)
    ranges: Dict[str, Tuple[Any, Any]] = field(default_factory=dict)
    search: str = ""


def toggle_sort(current: Optional[SortSpec], key: str) -> SortSpec:
    if current is not None and current.key == key and current.direction == "asc":
        return SortSpec(key=key, direction="desc")
    return SortSpec(key=key, direction="asc")


def field_value(entity: Any, key: str) -> Any:
    if isinstance(entity, Mapping):
        if key in entity:
            return entity[key]
        return entity.get(_CAMEL_RE.sub("_", key).lower())
    if hasattr(entity, key):
        return getattr(entity, key)
    return getattr(entity, _CAMEL_RE.sub("_", key).lower(), None)


def _all_values(entity: Any) -> List[Any]:
    if isinstance(entity, Mapping):
        return list(entity.values())
    if is_dataclass(entity):
        return [getattr(entity, f.name) for f in fields(entity)]
    return list(vars(entity).values())


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def sort_key(value: Any) -> Tuple[int, Any]:
    # Numbers, then dates, then text; mixed kinds never compare across groups.
    if isinstance(value, (int, float)):
        return (0, float(value))
    if isinstance(value, (str, date)):
        ts = to_timestamp(value)
        if ts is not None:
            return (1, ts.value)
    text = value if isinstance(value, str) else str(value)
    return (2, _COLLATOR.sort_key(text.casefold()))


def _equal(value: Any, expected: Any) -> bool:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = to_number(expected)
        return number is not None and float(value) == number
    return str(value) == str(expected)


def _bound_key(bound: Any, value: Any) -> Tuple[int, Any]:
    if isinstance(value, (int, float)) and isinstance(bound, str):
        number = to_number(bound)
        if number is not None:
            return (0, number)
    return sort_key(bound)


def _is_blank_filter(expected: Any) -> bool:
    if isinstance(expected, (list, tuple, set, frozenset)):
        return not expected
    return is_missing(expected)


def matches(entity: Any, filters: FilterSpec) -> bool:
    for key, expected in filters.equals.items():
        if _is_blank_filter(expected):
            continue
        value = field_value(entity, key)
        accepted = expected if isinstance(expected, (list, tuple, set, frozenset)) else [expected]
        if is_missing(value) or not any(_equal(value, a) for a in accepted):
            return False

    for key, (low, high) in filters.ranges.items():
        if is_missing(low) and is_missing(high):
            continue
        value = field_value(entity, key)
        if is_missing(value):
            return False
        k = sort_key(value)
        if not is_missing(low) and k < _bound_key(low, value):
            return False
        if not is_missing(high) and k > _bound_key(high, value):
            return False

    needle = filters.search.strip().casefold()
    if needle:
        if not any(needle in str(v).casefold() for v in _all_values(entity) if not is_missing(v)):
            return False
    return True


def sort_entities(entities: Iterable[Any], sort: SortSpec) -> List[Any]:
    """Stable sort; entities missing the key go last whatever the direction."""
    present: List[Any] = []
    missing: List[Any] = []
    for entity in entities:
        (missing if is_missing(field_value(entity, sort.key)) else present).append(entity)
    present.sort(key=lambda e: sort_key(field_value(e, sort.key)), reverse=sort.direction == "desc")
    return present + missing


def query(
    entities: Iterable[Any],
    filters: Optional[FilterSpec] = None,
    sort: Optional[SortSpec] = None,
) -> List[Any]:
    candidates = [e for e in entities if matches(e, filters)] if filters else list(entities)
    if sort is None:
        return candidates
    return sort_entities(candidates, sort)


def _as_range(value: Any) -> Optional[Tuple[Any, Any]]:
    if isinstance(value, Mapping):
        return value.get("min"), value.get("max")
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return None


def normalize_query(raw: Optional[dict] = None) -> Tuple[FilterSpec, Optional[SortSpec]]:
    raw = raw or {}

    equals = raw.get("equals") or raw.get("filters") or {}
    if not isinstance(equals, Mapping):
        equals = {}
    equals = {str(k): v for k, v in equals.items() if not _is_blank_filter(v)}

    ranges_raw = raw.get("ranges") or {}
    ranges: Dict[str, Tuple[Any, Any]] = {}
    if isinstance(ranges_raw, Mapping):
        for k, v in ranges_raw.items():
            bounds = _as_range(v)
            if bounds is not None:
                ranges[str(k)] = bounds

    search = raw.get("search") or ""
    if not isinstance(search, str):
        search = str(search)

    sort = None
    sort_key_name = raw.get("sort_key")
    if sort_key_name:
        direction = _DIRECTIONS.get(str(raw.get("sort_direction", "asc")).lower(), "asc")
        sort = SortSpec(key=str(sort_key_name), direction=direction)

    return FilterSpec(equals=equals, ranges=ranges, search=search.strip()), sort
