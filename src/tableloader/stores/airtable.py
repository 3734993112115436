"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Airtable REST record store.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import AsyncIterator, Callable
from typing import Any

from pydantic import ValidationError

from ..settings import AirtableSettings
from ..types import (
    Record,
    RecordStore,
    RecordStoreProtocolError,
    RecordStoreRequestError,
)

logger = logging.getLogger("tableloader.stores.airtable")

FetchFn = Callable[[str, dict[str, str], float], bytes]


class AirtableRecordStore(RecordStore):
    """
    Record store backed by the Airtable REST API.

    `select` issues `GET {api_url}/{base_id}/{table}` and follows the `offset`
    cursor until the listing is exhausted, yielding one list per page.
    Requests are blocking and run in a worker thread. Pass `fetch` to replace
    the HTTP call (it receives url, headers and timeout, and returns the body).
    """

    def __init__(
        self,
        settings: AirtableSettings,
        *,
        fetch: FetchFn | None = None,
    ) -> None:
        self.settings = settings
        self._fetch = fetch or self.http_get

    def _url(self, table: str, params: dict[str, str]) -> str:
        base = self.settings.api_url.rstrip("/")
        path = f"{urllib.parse.quote(self.settings.base_id)}/{urllib.parse.quote(table, safe='')}"
        query = urllib.parse.urlencode(params)
        return f"{base}/{path}?{query}" if query else f"{base}/{path}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    async def select(
        self,
        table: str,
        *,
        filter_formula: str | None = None,
        view: str | None = None,
    ) -> AsyncIterator[list[Record]]:
        params: dict[str, str] = {"pageSize": str(self.settings.page_size)}
        if filter_formula:
            params["filterByFormula"] = filter_formula
        if view:
            params["view"] = view

        while True:
            body = await asyncio.to_thread(
                self._fetch,
                self._url(table, params),
                self._headers(),
                self.settings.timeout_s,
            )
            records, offset = self._parse_page(table, body)
            logger.debug("Fetched %d records from %s", len(records), table)
            yield records
            if not offset:
                return
            params["offset"] = offset

    def _parse_page(self, table: str, body: bytes) -> tuple[list[Record], str | None]:
        try:
            decoded = json.loads(body.decode("utf-8"))
        except Exception as e:  # noqa: BLE001
            raise RecordStoreProtocolError(
                f"Invalid JSON response listing table '{table}'"
            ) from e

        if not isinstance(decoded, dict) or not isinstance(decoded.get("records"), list):
            raise RecordStoreProtocolError(
                f"Missing records array in response listing table '{table}'"
            )
        try:
            records = [Record.model_validate(row) for row in decoded["records"]]
        except ValidationError as e:
            raise RecordStoreProtocolError(
                f"Malformed record in response listing table '{table}'"
            ) from e

        offset = decoded.get("offset")
        return records, offset if isinstance(offset, str) and offset else None

    def http_get(self, url: str, headers: dict[str, str], timeout_s: float) -> bytes:
        req = urllib.request.Request(url, method="GET", headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=timeout_s) as resp:  # noqa: S310
                return resp.read()
        except urllib.error.HTTPError as e:
            body = ""
            try:
                body = e.read().decode("utf-8", errors="replace")
            except Exception:  # noqa: BLE001
                body = ""
            raise RecordStoreRequestError(
                f"HTTP {e.code} listing Airtable records: {body or e.reason}"
            ) from e
        except urllib.error.URLError as e:
            raise RecordStoreRequestError(
                f"Network error listing Airtable records: {e.reason}"
            ) from e


def create_airtable_store(**overrides: Any) -> AirtableRecordStore:
    """Build an `AirtableRecordStore` from `AIRTABLE_*` environment variables."""
    return AirtableRecordStore(AirtableSettings.from_env(), **overrides)
