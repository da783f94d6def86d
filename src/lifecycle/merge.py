"""
Structural merge of partial updates into stored documents.

Rules:
 - absent keys, ``None`` and ``KEEP`` leave the existing value untouched
 - ``Clear()`` removes the field so schema defaults apply on validation
 - ``Replace(x)`` sets ``x`` wholesale, skipping deep and keyed merging
 - nested objects merge field by field, partial wins on conflicts
 - arrays declared in the merge rules merge element by element on their
   identity field (or de-duplicate, for scalar unions); other arrays are replaced

The functions never mutate their inputs.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Set

from src.lifecycle.merge_rules import ArrayRule
from src.shared.logging_utils import warning as log_warning
from src.specs.common.datetime_utils import coerce_datetime


class _Keep:
    _instance: Optional["_Keep"] = None

    def __new__(cls) -> "_Keep":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "KEEP"


KEEP = _Keep()


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Replace:
    value: Any


CLEAR = Clear()


def _is_noop(value: Any) -> bool:
    return value is None or value is KEEP


def clean_value(value: Any) -> Any:
    """Deep-copy a partial value, dropping no-op markers and unwrapping Replace."""
    if isinstance(value, Replace):
        return clean_value(value.value)
    if isinstance(value, Mapping):
        return {
            k: clean_value(v)
            for k, v in value.items()
            if not _is_noop(v) and not isinstance(v, Clear)
        }
    if isinstance(value, (list, tuple)):
        return [clean_value(v) for v in value if not _is_noop(v) and not isinstance(v, Clear)]
    return copy.deepcopy(value)


def merge(
    existing: Mapping[str, Any],
    partial: Mapping[str, Any],
    rules: Optional[Mapping[str, ArrayRule]] = None,
) -> Dict[str, Any]:
    """Merge ``partial`` into ``existing`` and return a new document."""
    base = copy.deepcopy(dict(existing or {}))
    return _merge_object(base, partial or {}, rules or {}, "")


def _child_path(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _merge_object(
    target: Dict[str, Any],
    partial: Mapping[str, Any],
    rules: Mapping[str, ArrayRule],
    path: str,
) -> Dict[str, Any]:
    for key, value in partial.items():
        if _is_noop(value):
            continue
        if isinstance(value, Clear):
            target.pop(key, None)
            continue
        if isinstance(value, Replace):
            target[key] = clean_value(value.value)
            continue
        target[key] = _merge_value(target.get(key), value, rules, _child_path(path, key))
    return target


def _merge_value(current: Any, value: Any, rules: Mapping[str, ArrayRule], path: str) -> Any:
    if isinstance(value, Mapping):
        base = dict(current) if isinstance(current, Mapping) else {}
        return _merge_object(base, value, rules, path)
    if isinstance(value, (list, tuple)):
        rule = rules.get(path)
        if rule is None:
            return clean_value(list(value))
        existing = list(current) if isinstance(current, list) else []
        if rule.is_union:
            return _merge_union(existing, value)
        return _merge_keyed(existing, value, rule.key, rules, path)
    return clean_value(value)


def _merge_union(existing: List[Any], incoming: Any) -> List[Any]:
    result = list(existing)
    for item in incoming:
        if _is_noop(item) or isinstance(item, Clear):
            continue
        item = clean_value(item)
        if item not in result:
            result.append(item)
    return result


def identity_value(value: Any) -> Any:
    """Comparable form of an identity field; dates compare as instants."""
    if isinstance(value, (datetime, str)) or (isinstance(value, Mapping) and "$date" in value):
        coerced = coerce_datetime(value)
        if coerced is not None:
            return coerced
    return value


def _find_match(
    existing: List[Any],
    item: Mapping[str, Any],
    key: str,
    taken: Set[int],
) -> Optional[int]:
    item_id = item.get("id")
    item_key = item.get(key)
    for index, candidate in enumerate(existing):
        if index in taken or not isinstance(candidate, Mapping):
            continue
        candidate_id = candidate.get("id")
        if item_id is not None and candidate_id is not None:
            if candidate_id == item_id:
                return index
            continue
        if _is_noop(item_key) or candidate.get(key) is None:
            continue
        if identity_value(candidate.get(key)) == identity_value(item_key):
            return index
    return None


def _warn_duplicates(existing: List[Any], key: str, path: str) -> None:
    seen: Set[Any] = set()
    for candidate in existing:
        if not isinstance(candidate, Mapping) or candidate.get(key) is None:
            continue
        ident = identity_value(candidate.get(key))
        try:
            if ident in seen:
                log_warning(None, "merge:duplicate_identity", path=path, key=key, value=str(ident))
            seen.add(ident)
        except TypeError:
            continue


def _merge_keyed(
    existing: List[Any],
    incoming: Any,
    key: str,
    rules: Mapping[str, ArrayRule],
    path: str,
) -> List[Any]:
    _warn_duplicates(existing, key, path)
    result = list(existing)
    appended: List[Any] = []
    taken: Set[int] = set()
    for item in incoming:
        if _is_noop(item) or isinstance(item, Clear):
            continue
        replace = isinstance(item, Replace)
        body = item.value if replace else item
        if not isinstance(body, Mapping):
            appended.append(clean_value(body))
            continue
        index = _find_match(result, body, key, taken)
        if index is None:
            appended.append(_merge_object({}, body, rules, path))
            continue
        taken.add(index)
        if replace:
            result[index] = clean_value(body)
        else:
            result[index] = _merge_object(dict(result[index]), body, rules, path)
    return result + appended


_TAG_KEYS = {"$keep", "$clear", "$replace"}


def decode_tags(value: Any) -> Any:
    """Turn JSON tag objects into partial-value tags.

    ``{"$keep": true}`` becomes KEEP, ``{"$clear": true}`` becomes CLEAR and
    ``{"$replace": x}`` becomes ``Replace(x)``. Other values are walked recursively.
    """
    if isinstance(value, Mapping):
        if len(value) == 1 and set(value) <= _TAG_KEYS:
            tag, inner = next(iter(value.items()))
            if tag == "$replace":
                return Replace(inner)
            if inner:
                return KEEP if tag == "$keep" else CLEAR
        return {k: decode_tags(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_tags(v) for v in value]
    return value


__all__ = [
    "KEEP",
    "CLEAR",
    "Clear",
    "Replace",
    "clean_value",
    "decode_tags",
    "identity_value",
    "merge",
]
