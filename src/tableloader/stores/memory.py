"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-memory record store implementation.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ..types import Record, RecordStore


@dataclass(frozen=True, slots=True)
class SelectCall:
    """One `select` invocation observed by the store."""

    table: str
    filter_formula: str | None
    view: str | None


class InMemoryRecordStore(RecordStore):
    """
    In-process record store keyed by table name.

    Suitable for development and testing. Formulas are not evaluated: every
    query returns all rows of the table, paged by `page_size`, and the loader
    narrows them per lookup. Each call is appended to `calls`.
    """

    def __init__(
        self,
        tables: Mapping[str, Iterable[Record | Mapping[str, Any]]] | None = None,
        *,
        page_size: int = 100,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._page_size = page_size
        self._tables: dict[str, list[Record]] = {}
        self.calls: list[SelectCall] = []
        for table, rows in (tables or {}).items():
            self.add(table, rows)

    def add(self, table: str, rows: Iterable[Record | Mapping[str, Any]]) -> None:
        """Append rows to `table`; mappings are parsed as raw store JSON."""
        bucket = self._tables.setdefault(table, [])
        for row in rows:
            bucket.append(row if isinstance(row, Record) else Record.model_validate(row))

    async def select(
        self,
        table: str,
        *,
        filter_formula: str | None = None,
        view: str | None = None,
    ) -> AsyncIterator[list[Record]]:
        self.calls.append(SelectCall(table=table, filter_formula=filter_formula, view=view))
        rows = list(self._tables.get(table, []))
        for start in range(0, len(rows), self._page_size):
            yield rows[start : start + self._page_size]
