"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/inmemory.py.
"""

from __future__ import annotations

import time

from .base import CacheEntry, RecordCache


class InMemoryRecordCache(RecordCache):
    """Process-local cache backend suitable for development/test workloads."""

    backend_id: str = "inmemory"

    def __init__(self, *, clock=time.monotonic) -> None:
        self._clock = clock
        self._rows: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> str | None:
        row = self._rows.get(key)
        if row is None:
            return None
        if row.expires_at_s <= self._clock():
            self._rows.pop(key, None)
            return None
        return row.value

    async def set(self, key: str, value: str, *, ttl_s: int) -> None:
        if ttl_s <= 0:
            return
        self._rows[key] = CacheEntry(value=value, expires_at_s=self._clock() + ttl_s)

    async def delete(self, key: str) -> None:
        self._rows.pop(key, None)
