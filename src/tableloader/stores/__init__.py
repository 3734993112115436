"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Record store backends.
"""

from .airtable import AirtableRecordStore, create_airtable_store
from .memory import InMemoryRecordStore, SelectCall

__all__ = [
    "AirtableRecordStore",
    "InMemoryRecordStore",
    "SelectCall",
    "create_airtable_store",
]
