"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-request data source wiring for one table.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from .cache.base import RecordCache
from .methods import CachingMethods
from .metrics import LoaderMetrics
from .settings import LoaderSettings
from .types import FieldFilters, Record, RecordStore

STORE_CONTEXT_KEY = "record_store"


class TableDataSource:
    """
    Data source exposing cached lookups for one table.

    Call `initialize` once per request: it builds a fresh loader, so batching
    and memoization are scoped to that request while the cache is shared.
    The store comes from the constructor or from `context["record_store"]`.
    """

    def __init__(
        self,
        table: str,
        store: RecordStore | None = None,
        *,
        settings: LoaderSettings | None = None,
        metrics: LoaderMetrics | None = None,
    ) -> None:
        self.table = table
        self.store = store
        self.settings = settings
        self.metrics = metrics
        self.context: Mapping[str, Any] | None = None
        self._methods: CachingMethods | None = None

    def initialize(
        self,
        *,
        context: Mapping[str, Any] | None = None,
        cache: str | RecordCache | None = None,
    ) -> None:
        self.context = context
        store = self.store
        if store is None and context is not None:
            store = context.get(STORE_CONTEXT_KEY)
        if store is None:
            raise RuntimeError(
                f"No record store for table '{self.table}': pass one to the "
                f"constructor or set context['{STORE_CONTEXT_KEY}']"
            )
        self._methods = CachingMethods(
            self.table,
            store,
            cache=cache,
            settings=self.settings,
            metrics=self.metrics,
        )

    @property
    def methods(self) -> CachingMethods:
        if self._methods is None:
            raise RuntimeError(f"{type(self).__name__} used before initialize()")
        return self._methods

    async def find_one_by_id(
        self, record_id: str, *, ttl_s: int | None = None
    ) -> Record | None:
        return await self.methods.find_one_by_id(record_id, ttl_s=ttl_s)

    async def find_many_by_ids(
        self, record_ids: Sequence[str], *, ttl_s: int | None = None
    ) -> list[Record | None]:
        return await self.methods.find_many_by_ids(record_ids, ttl_s=ttl_s)

    async def find_by_fields(
        self, fields: FieldFilters, *, ttl_s: int | None = None
    ) -> list[Record]:
        return await self.methods.find_by_fields(fields, ttl_s=ttl_s)

    async def find_all(self, *, ttl_s: int | None = None) -> list[Record]:
        return await self.methods.find_all(ttl_s=ttl_s)

    async def delete_from_cache_by_id(self, record_id: str) -> None:
        await self.methods.delete_from_cache_by_id(record_id)

    async def delete_from_cache_by_fields(self, fields: FieldFilters) -> None:
        await self.methods.delete_from_cache_by_fields(fields)

    async def clear_all_records_cache(self) -> None:
        await self.methods.clear_all_records_cache()
