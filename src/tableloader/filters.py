"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Filter normalization and record matching.

Lookups are reduced to a canonical string key so that equivalent requests share
one loader slot and one shared-cache entry:

- field order is irrelevant (`{"a": 1, "b": 2}` == `{"b": 2, "a": 1}`)
- scalars and single-element lists are equivalent (`"x"` == `["x"]`)
- values are compared case-insensitively, except identifier values
- `None` entries are dropped

The key is compact JSON with sorted keys, so it stays stable across processes
and can be persisted in an external cache.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from .types import ID_FIELD, FieldFilters, Record, Scalar

ALL_KEY = "*"

_SCALAR_TYPES = (str, int, float, bool)

KeyValue: TypeAlias = str | bool


@dataclass(frozen=True, slots=True)
class FilterSet:
    """
    Canonical form of one field lookup.

    Attributes:
        key: Order-independent serialized key.
        filters: Field name to value tuple, original casing preserved.
    """

    key: str
    filters: dict[str, tuple[Scalar, ...]]


def fold_value(value: Any) -> str:
    """Case-fold one scalar for comparison. Integral floats compare as ints."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).lower()


def _key_value(value: Scalar) -> KeyValue:
    # Booleans stay typed so the formula can test checkbox columns.
    return value if isinstance(value, bool) else fold_value(value)


def _sort_order(value: KeyValue) -> tuple[bool, str]:
    return isinstance(value, bool), str(value)


def _wrap(name: str, value: Any) -> tuple[Scalar, ...]:
    if isinstance(value, _SCALAR_TYPES):
        return (value,)
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        out: list[Scalar] = []
        for item in value:
            if not isinstance(item, _SCALAR_TYPES):
                raise TypeError(
                    f"Filter values for field '{name}' must be scalars, "
                    f"got {type(item).__name__}"
                )
            out.append(item)
        return tuple(out)
    raise TypeError(
        f"Filter value for field '{name}' must be a scalar or a list of scalars, "
        f"got {type(value).__name__}"
    )


def _key_values(name: str, values: tuple[Scalar, ...]) -> list[KeyValue]:
    if name == ID_FIELD:
        return sorted({str(v) for v in values})
    return sorted({_key_value(v) for v in values}, key=_sort_order)


def encode_key(filters: Mapping[str, Sequence[Scalar]]) -> str:
    """Serialize a filter mapping to its canonical key."""
    payload = {name: _key_values(name, tuple(values)) for name, values in filters.items()}
    return json.dumps(payload, ensure_ascii=True, sort_keys=True, separators=(",", ":"))


def normalize_fields(fields: FieldFilters) -> FilterSet:
    """
    Normalize a field lookup into its key and canonical filter mapping.

    Raises:
        TypeError: When `fields` is not a mapping or holds unsupported values.
    """
    if not isinstance(fields, Mapping):
        raise TypeError(f"fields must be a mapping, got {type(fields).__name__}")

    filters: dict[str, tuple[Scalar, ...]] = {}
    for name in sorted(fields, key=str):
        if not isinstance(name, str):
            raise TypeError(f"Field names must be strings, got {type(name).__name__}")
        value = fields[name]
        if value is None:
            continue
        filters[name] = _wrap(name, value)

    return FilterSet(key=encode_key(filters), filters=filters)


def id_key(record_id: str) -> str:
    """Key used for a single-record identifier lookup."""
    return encode_key({ID_FIELD: [str(record_id)]})


def decode_key(key: str) -> dict[str, list[KeyValue]]:
    """
    Restore the filter mapping from a key produced by `encode_key`.

    Values come back in key form: folded, de-duplicated and sorted, with
    booleans kept as booleans.

    Raises:
        ValueError: When `key` is the all-records sentinel or is not a valid key.
    """
    if key == ALL_KEY:
        raise ValueError("The all-records key carries no filters")
    try:
        decoded = json.loads(key)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed lookup key: {key!r}") from exc
    if not isinstance(decoded, dict) or not all(
        isinstance(values, list) for values in decoded.values()
    ):
        raise ValueError(f"Malformed lookup key: {key!r}")
    return {
        name: [v if isinstance(v, bool) else str(v) for v in values]
        for name, values in decoded.items()
    }


def field_matches(record: Record, name: str, values: Sequence[KeyValue]) -> bool:
    """
    Return whether one record field holds any of `values`.

    `values` are expected in key form. Multi-valued cells match when any entry
    matches. A missing field only matches a `False` filter, since unchecked
    checkbox cells are omitted by the store.
    """
    actual = record.get(name)
    if actual is None:
        return any(value is False for value in values)
    if name == ID_FIELD:
        return str(actual) in values
    entries = actual if isinstance(actual, list) else [actual]
    wanted = {fold_value(value) for value in values}
    return any(entry is not None and fold_value(entry) in wanted for entry in entries)


def record_matches(
    record: Record,
    filters: Mapping[str, Sequence[KeyValue]],
    *,
    match_all: bool = False,
) -> bool:
    """Return whether `record` satisfies a decoded filter mapping."""
    if not filters:
        return False
    checks = (field_matches(record, name, values) for name, values in filters.items())
    return all(checks) if match_all else any(checks)
