"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/__init__.py.
"""

from .base import CacheEntry, RecordCache, RecordCacheError
from .factory import create_record_cache_from_env, default_record_cache, resolve_record_cache
from .inmemory import InMemoryRecordCache
from .redis import RedisRecordCache

__all__ = [
    "CacheEntry",
    "RecordCache",
    "RecordCacheError",
    "InMemoryRecordCache",
    "RedisRecordCache",
    "create_record_cache_from_env",
    "default_record_cache",
    "resolve_record_cache",
]
