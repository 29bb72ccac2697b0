"""
backend/scorehub/database.py

Purpose:
    MongoDB connection bootstrap and index management for all collections.

Dependencies:
    - motor.motor_asyncio
    - scorehub.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from scorehub.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("scorehub.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=5,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()
    logger.info("Connected to MongoDB database %s", settings.MONGO_DB)


async def close_db() -> None:
    global client
    if client:
        client.close()


async def get_db() -> AsyncIOMotorDatabase:
    return db


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent, safe to run repeatedly."""

    # ---- Users ----
    await db.users.create_index("email", unique=True)
    await db.users.create_index("username")
    await db.users.create_index([("points", -1)])
    await db.users.create_index("reset_token", sparse=True)

    # ---- Bets ----
    await db.bets.create_index([("user_id", 1), ("placed_at", -1)])
    await db.bets.create_index([("user_id", 1), ("status", 1)])
    await db.bets.create_index([("match_id", 1), ("status", 1)])

    # ---- Matches (scraped events) ----
    await db.matches.create_index("match_id", unique=True)
    await db.matches.create_index([("last_updated", -1)])

    # ---- Preferences (one per user) ----
    await db.user_preferences.create_index("user_id", unique=True)

    # ---- Ledgers (insert-only) ----
    await db.account_transactions.create_index([("user_id", 1), ("created_at", -1)])
    await db.account_transactions.create_index("reference_id")
    await db.points_transactions.create_index([("user_id", 1), ("created_at", -1)])
    await db.points_transactions.create_index("reference_id")

    # ---- Audit Logs ----
    await db.audit_logs.create_index([("action", 1), ("timestamp", -1)])
    await db.audit_logs.create_index([("actor_id", 1), ("timestamp", -1)])

    # ---- Worker state ----
    # _id = worker key, no additional index needed
