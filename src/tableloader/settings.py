"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Loader and store settings with explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True, slots=True)
class LoaderSettings:
    """
    Settings shared by the loader and the caching methods.

    Attributes:
        view: Store view every query runs against.
        cache_prefix: Optional first segment of shared cache keys. Empty keys
            are `<table>-<suffix>`.
        default_ttl_s: TTL applied when a call passes none. 0 disables caching.
        batch_delay_s: Extra time a window stays open. 0 dispatches on the next
            event loop tick.
        match_all_fields: Require every field of a lookup to match instead of any.
    """

    view: str = "Grid view"
    cache_prefix: str = ""
    default_ttl_s: int = 0
    batch_delay_s: float = 0.0
    match_all_fields: bool = False

    @staticmethod
    def from_env() -> "LoaderSettings":
        """Load settings from environment variables."""
        return LoaderSettings(
            view=os.getenv("TABLELOADER_VIEW", "Grid view"),
            cache_prefix=os.getenv("TABLELOADER_CACHE_PREFIX", ""),
            default_ttl_s=int(os.getenv("TABLELOADER_DEFAULT_TTL_S", "0")),
            batch_delay_s=float(os.getenv("TABLELOADER_BATCH_DELAY_S", "0")),
            match_all_fields=_env_flag("TABLELOADER_MATCH_ALL_FIELDS"),
        )


@dataclass(frozen=True, slots=True)
class AirtableSettings:
    """Connection settings for the Airtable REST store."""

    base_id: str
    api_key: str | None = None
    api_url: str = "https://api.airtable.com/v0"
    timeout_s: float = 30.0
    page_size: int = 100

    @staticmethod
    def from_env() -> "AirtableSettings":
        """Load settings from `AIRTABLE_*` environment variables."""
        base_id = os.getenv("AIRTABLE_BASE_ID", "").strip()
        if not base_id:
            raise ValueError("AIRTABLE_BASE_ID must be set")
        return AirtableSettings(
            base_id=base_id,
            api_key=os.getenv("AIRTABLE_API_KEY"),
            api_url=os.getenv("AIRTABLE_API_URL", "https://api.airtable.com/v0"),
            timeout_s=float(os.getenv("AIRTABLE_TIMEOUT_S", "30")),
            page_size=min(100, int(os.getenv("AIRTABLE_PAGE_SIZE", "100"))),
        )
