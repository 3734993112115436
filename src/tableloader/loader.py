"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request-scoped batching loader for one remote table.

Every lookup issued before control returns to the event loop joins the same
window. The window is dispatched as one remote query whose formula ORs one
clause per field name, and the returned rows are matched back to each key.
Identical keys share one future, and resolved keys stay memoized until
invalidated.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .filters import ALL_KEY, decode_key, id_key, record_matches
from .formula import build_formula, merge_filters
from .metrics import LoaderMetrics, NoOpLoaderMetrics
from .settings import LoaderSettings
from .types import Record, RecordStore

logger = logging.getLogger("tableloader.loader")


@dataclass(frozen=True, slots=True)
class LoadResult:
    """Records resolved for one key and whether the remote query succeeded."""

    records: list[Record]
    ok: bool = True


_Pending = tuple[str, "asyncio.Future[LoadResult]"]


class TableLoader:
    """Coalesce lookups against one table into one remote query per window."""

    def __init__(
        self,
        table: str,
        store: RecordStore,
        *,
        settings: LoaderSettings | None = None,
        metrics: LoaderMetrics | None = None,
    ) -> None:
        self.table = table
        self._store = store
        self._settings = settings or LoaderSettings()
        self._metrics = metrics or NoOpLoaderMetrics()
        self._memo: dict[str, asyncio.Future[LoadResult]] = {}
        self._pending: list[_Pending] = []
        self._scheduled = False
        self._dispatches: set[asyncio.Task[None]] = set()

    async def load_by_id(self, record_id: str) -> Record | None:
        """Return the record with `record_id`, or `None` when absent."""
        records = await self.load(id_key(record_id))
        return records[0] if records else None

    async def load_by_fields(self, key: str) -> list[Record]:
        """Return every record matching a normalized key, in store order."""
        return await self.load(key)

    async def load_all(self) -> list[Record]:
        """Return every record and prime identifier lookups for each of them."""
        return await self.load(ALL_KEY)

    async def load(self, key: str) -> list[Record]:
        """Join the current window with `key` and wait for its records."""
        return (await self.load_result(key)).records

    async def load_result(self, key: str) -> LoadResult:
        """
        Like `load`, also reporting whether the remote query succeeded.

        Failed lookups resolve to no records with `ok=False`.

        Raises:
            ValueError: When `key` is neither a normalized key nor `ALL_KEY`.
        """
        future = self._memo.get(key)
        if future is None:
            if key != ALL_KEY:
                decode_key(key)
            future = self._enqueue(key)
        # Shielded so one cancelled caller does not cancel the shared result.
        result = await asyncio.shield(future)
        return LoadResult(records=list(result.records), ok=result.ok)

    def prime(self, key: str, records: Iterable[Record]) -> None:
        """Memoize a resolved result for `key` unless one is already present."""
        if key in self._memo:
            return
        future: asyncio.Future[LoadResult] = asyncio.get_running_loop().create_future()
        future.set_result(LoadResult(records=list(records)))
        self._memo[key] = future

    def invalidate(self, key: str) -> None:
        """Forget the memoized result for `key`. Unknown keys are ignored."""
        self._memo.pop(key, None)

    def _enqueue(self, key: str) -> asyncio.Future[LoadResult]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[LoadResult] = loop.create_future()
        self._memo[key] = future
        self._pending.append((key, future))
        if not self._scheduled:
            self._scheduled = True
            if self._settings.batch_delay_s > 0:
                loop.call_later(self._settings.batch_delay_s, self._flush)
            else:
                loop.call_soon(self._flush)
        return future

    def _flush(self) -> None:
        batch = self._pending
        self._pending = []
        self._scheduled = False
        if not batch:
            return
        task = asyncio.get_running_loop().create_task(self._dispatch(batch))
        self._dispatches.add(task)
        task.add_done_callback(self._dispatches.discard)

    async def _dispatch(self, batch: list[_Pending]) -> None:
        tags = {"table": self.table}
        self._metrics.incr("dispatch", tags=tags)
        self._metrics.incr("keys", len(batch), tags=tags)
        logger.debug("Dispatching %d keys for table %s", len(batch), self.table)

        try:
            resolved, failed = await self._resolve([key for key, _ in batch])
        except asyncio.CancelledError:
            for key, future in batch:
                self._forget(key, future)
                future.cancel()
            raise
        except Exception as exc:
            for key, future in batch:
                self._forget(key, future)
                if not future.done():
                    future.set_exception(exc)
            return

        for key, future in batch:
            if key in failed:
                self._forget(key, future)
            if not future.done():
                future.set_result(
                    LoadResult(records=resolved[key], ok=key not in failed)
                )

    def _forget(self, key: str, future: asyncio.Future[LoadResult]) -> None:
        if self._memo.get(key) is future:
            del self._memo[key]

    async def _resolve(
        self, keys: list[str]
    ) -> tuple[dict[str, list[Record]], set[str]]:
        """Run the window's query and split the rows back out per key."""
        unique = list(dict.fromkeys(keys))
        decoded = {key: decode_key(key) for key in unique if key != ALL_KEY}

        if ALL_KEY in unique:
            # The full listing covers every other key in the window.
            records, ok = await self._select(None, len(unique))
            if ok:
                for record in records:
                    self.prime(id_key(record.id), [record])
        else:
            formula = build_formula(merge_filters(decoded.values()))
            if formula is None:
                records, ok = [], True
            else:
                records, ok = await self._select(formula, len(unique))

        failed = set() if ok else set(unique)
        match_all = self._settings.match_all_fields
        resolved: dict[str, list[Record]] = {}
        for key in unique:
            if key == ALL_KEY:
                resolved[key] = records
            else:
                resolved[key] = [
                    record
                    for record in records
                    if record_matches(record, decoded[key], match_all=match_all)
                ]
        return resolved, failed

    async def _select(
        self, formula: str | None, key_count: int
    ) -> tuple[list[Record], bool]:
        """Drain every page of one query. Failures degrade to no rows."""
        tags = {"table": self.table}
        self._metrics.incr("remote_queries", tags=tags)
        records: list[Record] = []
        try:
            async for page in self._store.select(
                self.table,
                filter_formula=formula,
                view=self._settings.view,
            ):
                records.extend(page)
        except Exception:
            self._metrics.incr("dispatch_errors", tags=tags)
            logger.exception(
                "Remote query failed for table %s (%d keys)", self.table, key_count
            )
            return [], False
        return records, True
