"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/base.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One cached payload with expiration metadata."""
    value: str
    expires_at_s: float


class RecordCacheError(RuntimeError):
    """Raised when cache backend resolution fails."""


class RecordCache(Protocol):
    """Shared key/value cache consumed by the caching methods."""
    backend_id: str

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, *, ttl_s: int) -> None: ...

    async def delete(self, key: str) -> None: ...
