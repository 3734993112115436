"""
batched_lookups.py — Batched Airtable lookups behind a shared cache.

Issues several lookups in one event loop tick; they are sent to Airtable as a
single filtered query. Results are cached for a minute.

Usage:
    export AIRTABLE_API_KEY=pat...
    export AIRTABLE_BASE_ID=app...
    python examples/batched_lookups.py
"""

import asyncio
import logging

from tableloader import TableDataSource, create_airtable_store, create_record_cache_from_env


async def main() -> None:
    users = TableDataSource("Users", create_airtable_store())
    users.initialize(cache=create_record_cache_from_env())

    alice, gamers, first = await asyncio.gather(
        users.find_by_fields({"username": "alice"}, ttl_s=60),
        users.find_by_fields({"interests": ["gaming", "games"]}, ttl_s=60),
        users.find_one_by_id("rec0000000000000", ttl_s=60),
    )
    print("alice:", [r.id for r in alice])
    print("gamers:", [r.id for r in gamers])
    print("first:", first.id if first else None)


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    asyncio.run(main())
