"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Factory helpers for selecting cache backends.
"""

from __future__ import annotations

import os
from threading import Lock
from typing import Any

from .base import RecordCache, RecordCacheError
from .inmemory import InMemoryRecordCache

_DEFAULT: InMemoryRecordCache | None = None
_LOCK = Lock()


def _env_first(*names: str, default: str | None = None) -> str | None:
    """
    Return the first non-empty environment variable in `names`.

    Args:
        *names: Environment variable names to check in order.
        default: Value returned if no non-empty variable is found.
    """
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        value = raw.strip()
        if value:
            return value
    return default


def default_record_cache() -> InMemoryRecordCache:
    """Return the process-wide in-memory cache, creating it on first use."""
    global _DEFAULT
    with _LOCK:
        if _DEFAULT is None:
            _DEFAULT = InMemoryRecordCache()
        return _DEFAULT


def create_record_cache_from_env(*, redis_client: Any | None = None) -> RecordCache:
    """
    Create a cache backend from `TABLELOADER_*` environment variables.

    Backends:
    - `inmemory` (default, process-wide instance)
    - `redis`

    Redis resolution:
    - Uses the provided `redis_client` when supplied.
    - Otherwise builds a client from `TABLELOADER_REDIS_URL` (or `REDIS_URL`).
    - If no URL is set, falls back to host/port/db/password variables.
    """
    backend = os.getenv("TABLELOADER_CACHE_BACKEND", "inmemory").strip().lower()

    if backend in ("mem", "memory", "inmemory", "in_memory"):
        return default_record_cache()

    if backend in ("redis",):
        return _build_redis_cache(redis_client)

    raise ValueError(f"Unknown TABLELOADER_CACHE_BACKEND: {backend}")


def _build_redis_cache(redis_client: Any | None) -> RecordCache:
    """Build a Redis cache, creating a client from the environment when needed."""
    from .redis import RedisRecordCache

    prefix = (
        _env_first("TABLELOADER_REDIS_PREFIX", default="tableloader:cache")
        or "tableloader:cache"
    )

    client = redis_client
    if client is None:
        try:
            import redis.asyncio as redis
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RecordCacheError(
                "Redis cache backend requires `redis` to be installed."
            ) from exc

        url = _env_first("TABLELOADER_REDIS_URL", "REDIS_URL")
        if not url:
            host = _env_first("TABLELOADER_REDIS_HOST", default="localhost")
            port = _env_first("TABLELOADER_REDIS_PORT", default="6379")
            db = _env_first("TABLELOADER_REDIS_DB", default="0")
            password = _env_first("TABLELOADER_REDIS_PASSWORD", default="")
            if password:
                url = f"redis://:{password}@{host}:{port}/{db}"
            else:
                url = f"redis://{host}:{port}/{db}"

        client = redis.Redis.from_url(url)

    return RedisRecordCache(client, prefix=prefix)


def resolve_record_cache(backend: str | RecordCache | None = None) -> RecordCache:
    """Resolve a cache backend from an id, an instance, or the default."""
    if backend is None:
        return default_record_cache()
    if not isinstance(backend, str):
        return backend

    key = backend.strip().lower()
    if key in ("mem", "memory", "inmemory", "in_memory"):
        return default_record_cache()
    if key == "redis":
        return _build_redis_cache(None)
    raise RecordCacheError(f"Unknown record cache backend '{backend}'")
