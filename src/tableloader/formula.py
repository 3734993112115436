"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Build Airtable `filterByFormula` expressions for one loader window.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence

from .filters import KeyValue, fold_value
from .types import ID_FIELD


def quote(value: str) -> str:
    """Quote a string literal for a formula."""
    return json.dumps(value, ensure_ascii=False)


def field_ref(name: str) -> str:
    """Reference a named column."""
    escaped = name.replace("\\", "\\\\").replace("}", "\\}")
    return "{" + escaped + "}"


def merge_filters(
    filter_sets: Iterable[Mapping[str, Sequence[KeyValue]]],
) -> dict[str, list[KeyValue]]:
    """
    Union the values of every decoded filter mapping per field name.

    Field names and values keep first-seen order.
    """
    merged: dict[str, list[KeyValue]] = {}
    for filters in filter_sets:
        for name, values in filters.items():
            bucket = merged.setdefault(name, [])
            for value in values:
                if value not in bucket:
                    bucket.append(value)
    return merged


def field_clause(name: str, values: Sequence[KeyValue]) -> str:
    """
    Build the clause testing one field against a set of key-form values.

    Identifier lookups compare `RECORD_ID()` exactly. Other fields are lowered
    and searched, which also covers multi-valued cells; the result is a
    superset that the loader narrows per key. Boolean values also test the raw
    cell, which is how checkbox columns evaluate in a formula.
    """
    if name == ID_FIELD:
        tests = [f"RECORD_ID()={quote(str(value))}" for value in values]
    else:
        ref = field_ref(name)
        target = f'LOWER({ref}&"")'
        tests = []
        for value in values:
            if value is True:
                tests.append(f"{ref}=TRUE()")
            elif value is False:
                tests.append(f"NOT({ref})")
            tests.append(f"FIND({quote(fold_value(value))},{target})>0")
    if len(tests) == 1:
        return tests[0]
    return f"OR({','.join(tests)})"


def build_formula(merged: Mapping[str, Sequence[KeyValue]]) -> str | None:
    """OR together one clause per field name, or `None` when nothing is filtered."""
    clauses = [field_clause(name, values) for name, values in merged.items() if values]
    if not clauses:
        return None
    return f"OR({','.join(clauses)})"
