"""Account: the only writer of users.virtual_currency and users.points.

Every mutation is one conditional single-document update, so concurrent
requests can never overdraw a balance or award the same points twice.
Each movement is followed by an insert-only ledger record
(account_transactions / points_transactions) for reconciliation.
"""

import logging
from typing import Optional

from bson import ObjectId
from fastapi import HTTPException, status
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

import scorehub.database as _db
from scorehub.models.account import (
    AccountTransactionInDB,
    PointsTransactionInDB,
    TransactionType,
)
from scorehub.utils import utcnow

logger = logging.getLogger("scorehub.account")


def _user_not_found() -> HTTPException:
    return HTTPException(status.HTTP_404_NOT_FOUND, "User not found")


async def get_balance(user_id: str) -> float:
    user = await _db.db.users.find_one(
        {"_id": ObjectId(user_id)}, {"virtual_currency": 1},
    )
    if not user:
        raise _user_not_found()
    return float(user.get("virtual_currency", 0.0))


async def debit(
    user_id: str, amount: float, *,
    reference_type: str, reference_id: str, description: str,
) -> float:
    """Atomically take ``amount`` from the balance. Returns the new balance.

    The ``virtual_currency >= amount`` guard and the decrement are a single
    update, so two concurrent debits cannot both pass the funds check.
    """
    user = await _db.db.users.find_one_and_update(
        {"_id": ObjectId(user_id), "virtual_currency": {"$gte": amount}},
        {
            "$inc": {"virtual_currency": -amount},
            "$set": {"updated_at": utcnow()},
        },
        projection={"virtual_currency": 1},
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        exists = await _db.db.users.find_one({"_id": ObjectId(user_id)}, {"_id": 1})
        if not exists:
            raise _user_not_found()
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Insufficient balance")

    balance_after = float(user["virtual_currency"])
    await _log_transaction(
        user_id=user_id,
        tx_type=TransactionType.BET_PLACED,
        amount=-amount,
        balance_after=balance_after,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
    )
    return balance_after


async def credit(
    user_id: str, amount: float, *,
    tx_type: TransactionType = TransactionType.BET_WON,
    reference_type: str, reference_id: str, description: str,
) -> float:
    """Add ``amount`` to the balance. Returns the new balance."""
    user = await _db.db.users.find_one_and_update(
        {"_id": ObjectId(user_id)},
        {
            "$inc": {"virtual_currency": amount},
            "$set": {"updated_at": utcnow()},
        },
        projection={"virtual_currency": 1},
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        logger.error("User not found for credit: %s (%.2f)", user_id, amount)
        raise _user_not_found()

    balance_after = float(user["virtual_currency"])
    await _log_transaction(
        user_id=user_id,
        tx_type=tx_type,
        amount=amount,
        balance_after=balance_after,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
    )
    return balance_after


async def award_points(
    user_id: str, points: int, *,
    guard: Optional[dict] = None,
    guard_set: Optional[dict] = None,
    reference_type: str, reference_id: str, description: str,
) -> bool:
    """Add ``points`` to the user's total if ``guard`` still matches.

    ``guard`` is merged into the filter and ``guard_set`` into the same
    update, so a state transition (e.g. a prediction leaving PENDING) and its
    points land together or not at all. Returns False when the guard no
    longer matched (already awarded by a concurrent call).
    """
    query = {"_id": ObjectId(user_id), **(guard or {})}
    update = {
        "$inc": {"points": points},
        "$set": {**(guard_set or {}), "updated_at": utcnow()},
    }
    result = await _db.db.users.update_one(query, update)
    if result.matched_count == 0:
        return False

    if points:
        await _log_points(
            user_id=user_id,
            points=points,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )
    return True


async def get_transactions(user_id: str, limit: int = 50, skip: int = 0) -> list[dict]:
    """Ledger history for a user, newest first."""
    return await _db.db.account_transactions.find(
        {"user_id": user_id},
    ).sort("created_at", -1).skip(skip).limit(limit).to_list(length=limit)


async def _log_transaction(
    user_id: str, tx_type: TransactionType, amount: float, balance_after: float,
    description: str, reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
) -> None:
    """Insert an immutable ledger record.

    The balance update has already been applied; a ledger write failure is
    logged for reconciliation and must not undo or fail the request.
    """
    entry = AccountTransactionInDB(
        user_id=user_id,
        type=tx_type,
        amount=amount,
        balance_after=balance_after,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        created_at=utcnow(),
    )
    try:
        await _db.db.account_transactions.insert_one(entry.model_dump())
    except PyMongoError:
        logger.exception(
            "Ledger write failed: user=%s type=%s amount=%.2f ref=%s",
            user_id, tx_type.value, amount, reference_id,
        )


async def _log_points(
    user_id: str, points: int, description: str,
    reference_type: Optional[str] = None, reference_id: Optional[str] = None,
) -> None:
    entry = PointsTransactionInDB(
        user_id=user_id,
        points=points,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        created_at=utcnow(),
    )
    try:
        await _db.db.points_transactions.insert_one(entry.model_dump())
    except PyMongoError:
        logger.exception(
            "Points ledger write failed: user=%s points=%d ref=%s",
            user_id, points, reference_id,
        )
