from __future__ import annotations

import asyncio
import logging

import pytest

from tableloader.filters import ALL_KEY, id_key, normalize_fields
from tableloader.loader import TableLoader
from tableloader.settings import LoaderSettings
from tableloader.stores import InMemoryRecordStore
from tableloader.types import Record

ROWS = [
    {"id": "r1", "fields": {"username": "alice", "interests": ["gaming", "reading"]}},
    {"id": "r2", "fields": {"username": "bob", "interests": ["games"]}},
    {"id": "r3", "fields": {"username": "Carol", "city": "Oslo"}},
]


def run_async(coro):
    return asyncio.run(coro)


def _store(page_size: int = 100) -> InMemoryRecordStore:
    return InMemoryRecordStore({"users": ROWS}, page_size=page_size)


def _ids(records: list[Record]) -> list[str]:
    return [record.id for record in records]


class _FailingStore:
    def __init__(self) -> None:
        self.calls = 0

    async def select(self, table, *, filter_formula=None, view=None):
        self.calls += 1
        raise RuntimeError("store down")
        yield []  # pragma: no cover


class _CountingMetrics:
    def __init__(self) -> None:
        self.counts: dict[str, int] = {}

    def incr(self, name, value=1, *, tags=None):
        self.counts[name] = self.counts.get(name, 0) + value


def test_same_tick_lookups_share_one_remote_query():
    async def scenario() -> None:
        store = _store()
        loader = TableLoader("users", store)
        alice, gamers, missing = await asyncio.gather(
            loader.load_by_fields(normalize_fields({"username": "alice"}).key),
            loader.load_by_fields(normalize_fields({"interests": ["gaming", "games"]}).key),
            loader.load_by_id("r9"),
        )
        assert _ids(alice) == ["r1"]
        assert _ids(gamers) == ["r1", "r2"]
        assert missing is None
        assert len(store.calls) == 1
        call = store.calls[0]
        assert call.table == "users"
        assert call.view == "Grid view"
        assert call.filter_formula is not None
        assert 'RECORD_ID()="r9"' in call.filter_formula
        assert "{username}" in call.filter_formula
        assert "{interests}" in call.filter_formula

    run_async(scenario())


def test_equivalent_keys_are_deduplicated():
    async def scenario() -> None:
        store = _store()
        loader = TableLoader("users", store)
        first = normalize_fields({"username": "alice", "city": "oslo"}).key
        second = normalize_fields({"city": ["Oslo"], "username": "ALICE"}).key
        a, b = await asyncio.gather(
            loader.load_by_fields(first), loader.load_by_fields(second)
        )
        assert _ids(a) == _ids(b) == ["r1", "r3"]
        assert len(store.calls) == 1

    run_async(scenario())


def test_resolved_keys_are_memoized_until_invalidated():
    async def scenario() -> None:
        store = _store()
        loader = TableLoader("users", store)
        key = normalize_fields({"username": "bob"}).key

        assert _ids(await loader.load_by_fields(key)) == ["r2"]
        assert _ids(await loader.load_by_fields(key)) == ["r2"]
        assert len(store.calls) == 1

        loader.invalidate(key)
        assert _ids(await loader.load_by_fields(key)) == ["r2"]
        assert len(store.calls) == 2

    run_async(scenario())


def test_invalidate_unknown_key_is_a_noop():
    loader = TableLoader("users", _store())
    loader.invalidate(id_key("never"))
    loader.invalidate(id_key("never"))


def test_later_ticks_open_a_new_window():
    async def scenario() -> None:
        store = _store()
        loader = TableLoader("users", store)
        await loader.load_by_id("r1")
        await loader.load_by_id("r2")
        assert len(store.calls) == 2

    run_async(scenario())


def test_load_all_drains_pages_and_primes_id_lookups():
    async def scenario() -> None:
        store = _store(page_size=2)
        loader = TableLoader("users", store)

        records = await loader.load_all()
        assert _ids(records) == ["r1", "r2", "r3"]
        assert store.calls[0].filter_formula is None

        record = await loader.load_by_id("r3")
        assert record is not None
        assert record.get("city") == "Oslo"
        assert len(store.calls) == 1

    run_async(scenario())


def test_all_records_sentinel_serves_the_whole_window():
    async def scenario() -> None:
        store = _store()
        loader = TableLoader("users", store)
        everything, carol, one = await asyncio.gather(
            loader.load_all(),
            loader.load_by_fields(normalize_fields({"username": "carol"}).key),
            loader.load_by_id("r2"),
        )
        assert len(everything) == 3
        assert _ids(carol) == ["r3"]
        assert one is not None and one.id == "r2"
        assert len(store.calls) == 1
        assert store.calls[0].filter_formula is None

    run_async(scenario())


def test_results_are_copies_of_the_shared_list():
    async def scenario() -> None:
        loader = TableLoader("users", _store())
        first = await loader.load_all()
        first.clear()
        assert len(await loader.load_all()) == 3

    run_async(scenario())


def test_remote_failure_degrades_to_empty_results(caplog):
    async def scenario() -> None:
        store = _FailingStore()
        metrics = _CountingMetrics()
        loader = TableLoader("users", store, metrics=metrics)
        with caplog.at_level(logging.ERROR, logger="tableloader.loader"):
            by_fields, by_id = await asyncio.gather(
                loader.load_by_fields(normalize_fields({"username": "alice"}).key),
                loader.load_by_id("r1"),
            )
        assert by_fields == []
        assert by_id is None
        assert "Remote query failed for table users" in caplog.text
        assert metrics.counts["dispatch_errors"] == 1

        # failed keys are not memoized
        await loader.load_by_id("r1")
        assert store.calls == 2

    run_async(scenario())


def test_load_result_reports_remote_failures():
    async def scenario() -> None:
        failed = await TableLoader("users", _FailingStore()).load_result(ALL_KEY)
        assert failed.ok is False
        assert failed.records == []

        loaded = await TableLoader("users", _store()).load_result(ALL_KEY)
        assert loaded.ok is True
        assert _ids(loaded.records) == ["r1", "r2", "r3"]

    run_async(scenario())


def test_match_all_fields_setting_requires_every_field():
    async def scenario() -> None:
        loader = TableLoader(
            "users", _store(), settings=LoaderSettings(match_all_fields=True)
        )
        key = normalize_fields({"username": "alice", "city": "oslo"}).key
        assert await loader.load_by_fields(key) == []

    run_async(scenario())


def test_empty_lookup_skips_the_remote_query():
    async def scenario() -> None:
        store = _store()
        loader = TableLoader("users", store)
        assert await loader.load_by_fields(normalize_fields({"gone": None}).key) == []
        assert store.calls == []

    run_async(scenario())


def test_batch_delay_widens_the_window():
    async def scenario() -> None:
        store = _store()
        loader = TableLoader("users", store, settings=LoaderSettings(batch_delay_s=0.05))

        async def late() -> Record | None:
            await asyncio.sleep(0)
            return await loader.load_by_id("r2")

        first, second = await asyncio.gather(loader.load_by_id("r1"), late())
        assert first is not None and first.id == "r1"
        assert second is not None and second.id == "r2"
        assert len(store.calls) == 1

    run_async(scenario())


def test_malformed_key_fails_before_enqueueing():
    async def scenario() -> None:
        store = _store()
        loader = TableLoader("users", store)
        with pytest.raises(ValueError, match="Malformed"):
            await loader.load_by_fields("username=alice")
        assert store.calls == []

    run_async(scenario())


def test_metrics_count_dispatches_and_keys():
    async def scenario() -> None:
        metrics = _CountingMetrics()
        loader = TableLoader("users", _store(), metrics=metrics)
        await asyncio.gather(loader.load_by_id("r1"), loader.load_by_id("r2"), loader.load(ALL_KEY))
        assert metrics.counts["dispatch"] == 1
        assert metrics.counts["keys"] == 3
        assert metrics.counts["remote_queries"] == 1

    run_async(scenario())
