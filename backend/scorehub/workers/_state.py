"""Persistent worker state: last successful run per worker, kept across restarts."""

from datetime import datetime

import scorehub.database as _db
from scorehub.utils import utcnow


async def get_synced_at(worker_id: str) -> datetime | None:
    doc = await _db.db.worker_state.find_one({"_id": worker_id})
    return doc["synced_at"] if doc else None


async def set_synced(worker_id: str, **stats) -> None:
    """Mark a worker as just run, with optional counters for /health."""
    await _db.db.worker_state.update_one(
        {"_id": worker_id},
        {"$set": {"synced_at": utcnow(), **stats}},
        upsert=True,
    )
