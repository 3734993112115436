"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cached lookup methods for one table.

Reads check the shared cache first, fall back to the request-scoped loader, and
store fresh results when a positive TTL applies. Invalidation clears both the
loader's memoized key and the shared cache entry.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from pydantic import TypeAdapter

from .cache.base import RecordCache
from .cache.factory import resolve_record_cache
from .filters import ALL_KEY, id_key, normalize_fields
from .loader import LoadResult, TableLoader
from .metrics import LoaderMetrics, NoOpLoaderMetrics
from .settings import LoaderSettings
from .types import FieldFilters, Record, RecordStore

_RECORD_LIST = TypeAdapter(list[Record])


class CachingMethods:
    """Lookup and invalidation methods for one table."""

    def __init__(
        self,
        table: str,
        store: RecordStore,
        *,
        cache: str | RecordCache | None = None,
        settings: LoaderSettings | None = None,
        metrics: LoaderMetrics | None = None,
    ) -> None:
        self.table = table
        self.settings = settings or LoaderSettings()
        self._metrics = metrics or NoOpLoaderMetrics()
        self._cache = resolve_record_cache(cache)
        self.loader = TableLoader(
            table,
            store,
            settings=self.settings,
            metrics=self._metrics,
        )

    def cache_key(self, suffix: str) -> str:
        """Shared cache key for one lookup of this table."""
        if self.settings.cache_prefix:
            return f"{self.settings.cache_prefix}-{self.table}-{suffix}"
        return f"{self.table}-{suffix}"

    def _ttl(self, ttl_s: int | None) -> int:
        return self.settings.default_ttl_s if ttl_s is None else ttl_s

    async def _cached(self, key: str) -> str | None:
        blob = await self._cache.get(key)
        name = "cache_misses" if blob is None else "cache_hits"
        self._metrics.incr(name, tags={"table": self.table})
        return blob

    async def find_one_by_id(
        self, record_id: str, *, ttl_s: int | None = None
    ) -> Record | None:
        """Return one record by id, or `None` when it does not exist."""
        cache_key = self.cache_key(str(record_id))
        cached = await self._cached(cache_key)
        if cached is not None:
            return Record.model_validate_json(cached)

        record = await self.loader.load_by_id(str(record_id))
        ttl = self._ttl(ttl_s)
        if record is not None and ttl > 0:
            await self._cache.set(cache_key, record.model_dump_json(by_alias=True), ttl_s=ttl)
        return record

    async def find_many_by_ids(
        self, record_ids: Sequence[str], *, ttl_s: int | None = None
    ) -> list[Record | None]:
        """Return one entry per id, in input order."""
        return list(
            await asyncio.gather(
                *(self.find_one_by_id(record_id, ttl_s=ttl_s) for record_id in record_ids)
            )
        )

    async def find_by_fields(
        self, fields: FieldFilters, *, ttl_s: int | None = None
    ) -> list[Record]:
        """
        Return records matching a field lookup, in store order.

        Raises:
            TypeError: When `fields` is not a mapping of scalars or scalar lists.
        """
        filter_set = normalize_fields(fields)
        cache_key = self.cache_key(filter_set.key)
        cached = await self._cached(cache_key)
        if cached is not None:
            return _RECORD_LIST.validate_json(cached)

        result = await self.loader.load_result(filter_set.key)
        await self._store_result(cache_key, result, ttl_s)
        return result.records

    async def find_all(self, *, ttl_s: int | None = None) -> list[Record]:
        """Return every record in the table's view."""
        cache_key = self.cache_key("all")
        cached = await self._cached(cache_key)
        if cached is not None:
            records = _RECORD_LIST.validate_json(cached)
            for record in records:
                self.loader.prime(id_key(record.id), [record])
            return records

        result = await self.loader.load_result(ALL_KEY)
        await self._store_result(cache_key, result, ttl_s)
        return result.records

    async def _store_result(
        self, cache_key: str, result: LoadResult, ttl_s: int | None
    ) -> None:
        # Failed dispatches are never cached.
        ttl = self._ttl(ttl_s)
        if result.ok and ttl > 0:
            await self._cache.set(cache_key, _dump_records(result.records), ttl_s=ttl)

    async def delete_from_cache_by_id(self, record_id: str) -> None:
        self.loader.invalidate(id_key(str(record_id)))
        await self._cache.delete(self.cache_key(str(record_id)))

    async def delete_from_cache_by_fields(self, fields: FieldFilters) -> None:
        filter_set = normalize_fields(fields)
        self.loader.invalidate(filter_set.key)
        await self._cache.delete(self.cache_key(filter_set.key))

    async def clear_all_records_cache(self) -> None:
        self.loader.invalidate(ALL_KEY)
        await self._cache.delete(self.cache_key("all"))


def _dump_records(records: list[Record]) -> str:
    return _RECORD_LIST.dump_json(records, by_alias=True).decode("utf-8")
