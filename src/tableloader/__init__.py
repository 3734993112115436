"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request-scoped batching and shared caching for remote table lookups.

Quick start::

    from tableloader import InMemoryRecordStore, TableDataSource

    store = InMemoryRecordStore({"users": [{"id": "r1", "fields": {"username": "alice"}}]})
    users = TableDataSource("users", store)
    users.initialize()

    alice, bob = await asyncio.gather(
        users.find_by_fields({"username": "alice"}),
        users.find_by_fields({"username": "bob"}),
    )  # one remote query
"""

from .cache import (
    InMemoryRecordCache,
    RecordCache,
    RecordCacheError,
    RedisRecordCache,
    create_record_cache_from_env,
    resolve_record_cache,
)
from .datasource import TableDataSource
from .filters import ALL_KEY, FilterSet, decode_key, id_key, normalize_fields
from .loader import TableLoader
from .methods import CachingMethods
from .metrics import LoaderMetrics, NoOpLoaderMetrics, PrometheusLoaderMetrics
from .settings import AirtableSettings, LoaderSettings
from .stores import AirtableRecordStore, InMemoryRecordStore, create_airtable_store
from .types import (
    ID_FIELD,
    Record,
    RecordStore,
    RecordStoreError,
    RecordStoreProtocolError,
    RecordStoreRequestError,
)

__all__ = [
    "ALL_KEY",
    "ID_FIELD",
    "AirtableRecordStore",
    "AirtableSettings",
    "CachingMethods",
    "FilterSet",
    "InMemoryRecordCache",
    "InMemoryRecordStore",
    "LoaderMetrics",
    "LoaderSettings",
    "NoOpLoaderMetrics",
    "PrometheusLoaderMetrics",
    "Record",
    "RecordCache",
    "RecordCacheError",
    "RecordStore",
    "RecordStoreError",
    "RecordStoreProtocolError",
    "RecordStoreRequestError",
    "RedisRecordCache",
    "TableDataSource",
    "TableLoader",
    "create_airtable_store",
    "create_record_cache_from_env",
    "decode_key",
    "id_key",
    "normalize_fields",
    "resolve_record_cache",
]
