"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Record model, filter value aliases, and the remote store protocol.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any, Protocol, TypeAlias, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

Scalar: TypeAlias = str | int | float | bool
FieldValue: TypeAlias = Scalar | Sequence[Scalar] | None
FieldFilters: TypeAlias = Mapping[str, FieldValue]

ID_FIELD = "id"


class Record(BaseModel):
    """
    One row returned by the remote store.

    Attributes:
        id: Stable record identifier assigned by the store.
        fields: Column name to cell value mapping. Multi-valued cells are lists.
        created_time: Store-assigned creation timestamp, when provided.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    id: str
    fields: dict[str, Any] = Field(default_factory=dict)
    created_time: str | None = Field(default=None, alias="createdTime")

    def get(self, name: str, default: Any = None) -> Any:
        """Return one field value; the reserved id field maps to `Record.id`."""
        if name == ID_FIELD:
            return self.id
        return self.fields.get(name, default)


class RecordStoreError(RuntimeError):
    """Base remote store error."""


class RecordStoreRequestError(RecordStoreError):
    """Raised when the remote store request fails at the transport level."""


class RecordStoreProtocolError(RecordStoreError):
    """Raised when the remote store response payload is malformed."""


@runtime_checkable
class RecordStore(Protocol):
    """
    Remote tabular store capability consumed by the loader.

    `select` yields one list of records per page. `filter_formula=None` selects
    every record in the view.
    """

    def select(
        self,
        table: str,
        *,
        filter_formula: str | None = None,
        view: str | None = None,
    ) -> AsyncIterator[list[Record]]: ...
