"""Wagering: place bets against the virtual balance and settle them."""

import logging
import math
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from fastapi import HTTPException, status
from pymongo.errors import PyMongoError

import scorehub.database as _db
from scorehub.models.account import TransactionType
from scorehub.models.bet import BetInDB, BetStatus, Outcome
from scorehub.providers.results import OutcomeDecider, get_outcome_decider
from scorehub.services import account_service
from scorehub.utils import ensure_utc, utcnow

logger = logging.getLogger("scorehub.betting")

HISTORY_LIMIT = 50


def _parse_positive(value: Any) -> Optional[float]:
    """Parse a finite, strictly positive number. Numeric strings are accepted."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _parse_outcome(value: Any) -> Outcome:
    try:
        return Outcome(value)
    except ValueError:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "Invalid outcome. Must be HOME, DRAW or AWAY",
        )


async def place_bet(
    user_id: str,
    match_id: str,
    home_team: str,
    away_team: str,
    competition: str,
    bet_amount: Any,
    odds: Any,
    selected_outcome: Any,
    match_date: datetime,
) -> tuple[dict, float]:
    """Debit the stake and record a PENDING bet. Returns (bet_doc, new_balance)."""
    amount = _parse_positive(bet_amount)
    if amount is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid bet amount")
    parsed_odds = _parse_positive(odds)
    if parsed_odds is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid odds")
    outcome = _parse_outcome(selected_outcome)

    user = await _db.db.users.find_one(
        {"_id": ObjectId(user_id)}, {"username": 1, "virtual_currency": 1},
    )
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    if float(user.get("virtual_currency", 0.0)) < amount:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Insufficient balance")

    bet_id = ObjectId()
    bet = BetInDB(
        user_id=user_id,
        username=user["username"],
        match_id=match_id,
        home_team=home_team,
        away_team=away_team,
        competition=competition,
        bet_amount=amount,
        odds=parsed_odds,
        selected_outcome=outcome,
        potential_winnings=amount * parsed_odds,
        status=BetStatus.PENDING,
        match_date=ensure_utc(match_date),
        placed_at=utcnow(),
    )

    # The balance check above is advisory; the conditional debit is authoritative.
    new_balance = await account_service.debit(
        user_id, amount,
        reference_type="bet",
        reference_id=str(bet_id),
        description=f"Bet on {home_team} vs {away_team} ({outcome.value})",
    )

    bet_doc = {"_id": bet_id, **bet.model_dump()}
    try:
        await _db.db.bets.insert_one(bet_doc)
    except PyMongoError:
        logger.exception("Bet insert failed after debit, refunding: user=%s bet=%s", user_id, bet_id)
        await account_service.credit(
            user_id, amount,
            tx_type=TransactionType.BET_REFUND,
            reference_type="bet",
            reference_id=str(bet_id),
            description="Refund: bet could not be recorded",
        )
        raise

    logger.info(
        "Bet placed: user=%s match=%s outcome=%s amount=%.2f odds=%.2f",
        user_id, match_id, outcome.value, amount, parsed_odds,
    )
    return bet_doc, new_balance


async def resolve_bets(
    *,
    username: Optional[str] = None,
    user_id: Optional[str] = None,
    decider: Optional[OutcomeDecider] = None,
) -> tuple[list[dict], float]:
    """Settle every PENDING bet of a user. Returns (resolved_bets, new_balance).

    The user is looked up by ``username`` when given, else by ``user_id``.
    Each bet is claimed with a conditional update on ``status == PENDING``,
    so concurrent or repeated calls transition a bet at most once and its
    winnings are credited at most once.
    """
    if username is not None:
        user = await _db.db.users.find_one({"username": username})
    elif user_id is not None:
        user = await _db.db.users.find_one({"_id": ObjectId(user_id)})
    else:
        user = None
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")

    uid = str(user["_id"])
    decider = decider or get_outcome_decider()
    pending = await _db.db.bets.find(
        {"user_id": uid, "status": BetStatus.PENDING.value},
    ).to_list(length=None)

    resolved: list[dict] = []
    total_winnings = 0.0
    for bet in pending:
        decision = await decider.decide(bet)
        if decision is None:
            continue

        now = utcnow()
        claimed = await _db.db.bets.update_one(
            {"_id": bet["_id"], "status": BetStatus.PENDING.value},
            {"$set": {
                "status": decision.status.value,
                "result": decision.actual_outcome.value,
                "resolved_at": now,
            }},
        )
        if claimed.modified_count == 0:
            # Settled by a concurrent call.
            continue

        bet.update(
            status=decision.status.value,
            result=decision.actual_outcome.value,
            resolved_at=now,
        )
        resolved.append(bet)
        if decision.status == BetStatus.WON:
            total_winnings += float(bet["potential_winnings"])

    won_ids = [str(b["_id"]) for b in resolved if b["status"] == BetStatus.WON.value]
    if total_winnings > 0:
        new_balance = await account_service.credit(
            uid, total_winnings,
            tx_type=TransactionType.BET_WON,
            reference_type="bet_batch",
            reference_id=",".join(won_ids),
            description=f"Winnings for {len(won_ids)} bet(s)",
        )
    else:
        new_balance = await account_service.get_balance(uid)

    logger.info(
        "Bets resolved: user=%s resolved=%d winnings=%.2f",
        uid, len(resolved), total_winnings,
    )
    return resolved, new_balance


async def get_betting_history(user_id: str, limit: int = HISTORY_LIMIT) -> list[dict]:
    """Most recent bets of a user, newest first. Unknown users simply have none."""
    return await _db.db.bets.find(
        {"user_id": user_id},
    ).sort("placed_at", -1).limit(limit).to_list(length=limit)


async def get_user_balance(user_id: str) -> float:
    return await account_service.get_balance(user_id)


async def get_betting_stats(user_id: str) -> dict:
    """Counts per status, win rate over settled bets and the current balance."""
    bets = _db.db.bets
    total = await bets.count_documents({"user_id": user_id})
    won = await bets.count_documents({"user_id": user_id, "status": BetStatus.WON.value})
    lost = await bets.count_documents({"user_id": user_id, "status": BetStatus.LOST.value})
    pending = await bets.count_documents({"user_id": user_id, "status": BetStatus.PENDING.value})
    settled = won + lost

    return {
        "total_bets": total,
        "won_bets": won,
        "lost_bets": lost,
        "pending_bets": pending,
        "win_rate": round(won / settled * 100, 2) if settled else 0.0,
        "total_coins": await account_service.get_balance(user_id),
    }
