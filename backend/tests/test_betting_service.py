"""
backend/tests/test_betting_service.py

Purpose:
    Bet placement and settlement: balance arithmetic, input rejection,
    compensating refund, single settlement per bet under repeated resolves.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from fastapi import HTTPException
from pymongo.errors import PyMongoError

from fake_mongo import FakeCollection, FakeDB
from scorehub.models.bet import BetStatus, Outcome
from scorehub.providers.results import CoinFlipDecider, OutcomeDecider, OutcomeDecision
from scorehub.services import betting_service

MATCH_DATE = datetime(2024, 8, 17, 14, 0, tzinfo=timezone.utc)


class _FailingBets(FakeCollection):
    async def insert_one(self, doc):
        raise PyMongoError("write failed")


class _FixedDecider(OutcomeDecider):
    """Settles by match id; unknown matches stay pending."""

    def __init__(self, outcomes: dict[str, Outcome]):
        self.outcomes = outcomes

    async def decide(self, bet):
        actual = self.outcomes.get(bet["match_id"])
        if actual is None:
            return None
        won = actual.value == bet["selected_outcome"]
        return OutcomeDecision(BetStatus.WON if won else BetStatus.LOST, actual)


def _setup(monkeypatch, balance=1000.0, bets=None):
    user_id = ObjectId()
    db = FakeDB(
        users=FakeCollection([{
            "_id": user_id, "username": "alice", "virtual_currency": balance, "points": 0,
        }]),
        bets=bets if bets is not None else FakeCollection(),
    )
    monkeypatch.setattr(betting_service._db, "db", db, raising=False)
    return db, str(user_id)


async def _place(user_id, amount=200, odds=2.5, outcome="HOME", match_id="m1"):
    return await betting_service.place_bet(
        user_id,
        match_id=match_id,
        home_team="Arsenal",
        away_team="Chelsea",
        competition="PL",
        bet_amount=amount,
        odds=odds,
        selected_outcome=outcome,
        match_date=MATCH_DATE,
    )


@pytest.mark.asyncio
async def test_place_bet_debits_stake_and_records_pending_bet(monkeypatch):
    db, user_id = _setup(monkeypatch)

    bet, new_balance = await _place(user_id)

    assert new_balance == 800.0
    assert bet["potential_winnings"] == 500.0
    assert bet["status"] == "PENDING"
    assert bet["result"] is None
    assert bet["username"] == "alice"
    assert db.users.docs[0]["virtual_currency"] == 800.0
    assert db.bets.docs[0]["_id"] == bet["_id"]


@pytest.mark.asyncio
async def test_place_bet_accepts_numeric_strings(monkeypatch):
    _, user_id = _setup(monkeypatch)

    bet, new_balance = await _place(user_id, amount="200", odds="1.5")

    assert new_balance == 800.0
    assert bet["bet_amount"] == 200.0
    assert bet["potential_winnings"] == 300.0


@pytest.mark.asyncio
async def test_place_bet_over_balance_is_rejected(monkeypatch):
    db, user_id = _setup(monkeypatch, balance=100.0)

    with pytest.raises(HTTPException) as exc:
        await _place(user_id, amount=150)

    assert exc.value.status_code == 400
    assert exc.value.detail == "Insufficient balance"
    assert db.users.docs[0]["virtual_currency"] == 100.0
    assert db.bets.docs == []


@pytest.mark.asyncio
async def test_concurrent_bets_never_overdraw_the_balance(monkeypatch):
    db, user_id = _setup(monkeypatch, balance=1000.0)

    results = await asyncio.gather(
        *(_place(user_id, amount=300, match_id=f"m{i}") for i in range(5)),
        return_exceptions=True,
    )

    placed = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, HTTPException)]
    assert len(placed) == 3
    assert len(rejected) == 2
    assert all(r.status_code == 400 for r in rejected)
    assert db.users.docs[0]["virtual_currency"] == 100.0
    assert len(db.bets.docs) == 3
    assert len([t for t in db.account_transactions.docs if t["type"] == "BET_PLACED"]) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5, "abc", None, True, float("nan"), float("inf")])
async def test_place_bet_rejects_invalid_amount(monkeypatch, amount):
    db, user_id = _setup(monkeypatch)

    with pytest.raises(HTTPException) as exc:
        await _place(user_id, amount=amount)

    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid bet amount"
    assert db.users.docs[0]["virtual_currency"] == 1000.0


@pytest.mark.asyncio
async def test_place_bet_rejects_invalid_odds_and_outcome(monkeypatch):
    _, user_id = _setup(monkeypatch)

    with pytest.raises(HTTPException) as exc:
        await _place(user_id, odds=0)
    assert exc.value.detail == "Invalid odds"

    with pytest.raises(HTTPException) as exc:
        await _place(user_id, outcome="OVER")
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_place_bet_unknown_user_is_404(monkeypatch):
    _setup(monkeypatch)
    with pytest.raises(HTTPException) as exc:
        await _place(str(ObjectId()))
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_failed_bet_insert_refunds_the_stake(monkeypatch):
    db, user_id = _setup(monkeypatch, bets=_FailingBets())

    with pytest.raises(PyMongoError):
        await _place(user_id)

    assert db.users.docs[0]["virtual_currency"] == 1000.0
    types = [t["type"] for t in db.account_transactions.docs]
    assert types == ["BET_PLACED", "BET_REFUND"]


@pytest.mark.asyncio
async def test_resolve_credits_only_won_bets_once(monkeypatch):
    db, user_id = _setup(monkeypatch)
    await _place(user_id, amount=200, odds=2.5, outcome="HOME", match_id="m1")
    await _place(user_id, amount=100, odds=3.0, outcome="AWAY", match_id="m2")
    decider = _FixedDecider({"m1": Outcome.HOME, "m2": Outcome.HOME})

    resolved, balance = await betting_service.resolve_bets(username="alice", decider=decider)

    assert {b["match_id"]: b["status"] for b in resolved} == {"m1": "WON", "m2": "LOST"}
    assert all(b["result"] == "HOME" for b in resolved)
    assert balance == 700.0 + 500.0
    assert [b["status"] for b in db.bets.docs if b["status"] == "PENDING"] == []

    again, balance_again = await betting_service.resolve_bets(username="alice", decider=decider)

    assert again == []
    assert balance_again == 1200.0
    assert [t["type"] for t in db.account_transactions.docs].count("BET_WON") == 1


@pytest.mark.asyncio
async def test_resolve_leaves_undecided_bets_pending(monkeypatch):
    db, user_id = _setup(monkeypatch)
    await _place(user_id, match_id="m1")
    await _place(user_id, match_id="m2")

    resolved, balance = await betting_service.resolve_bets(
        user_id=user_id, decider=_FixedDecider({"m1": Outcome.AWAY}),
    )

    assert [b["match_id"] for b in resolved] == ["m1"]
    assert balance == 600.0
    statuses = {b["match_id"]: b["status"] for b in db.bets.docs}
    assert statuses == {"m1": "LOST", "m2": "PENDING"}


@pytest.mark.asyncio
async def test_resolve_skips_bets_claimed_concurrently(monkeypatch):
    db, user_id = _setup(monkeypatch)
    await _place(user_id, match_id="m1")

    class _RacingDecider(_FixedDecider):
        async def decide(self, bet):
            # Another resolver settles the bet while this one is deciding.
            db.bets.docs[0]["status"] = "WON"
            return await super().decide(bet)

    resolved, balance = await betting_service.resolve_bets(
        user_id=user_id, decider=_RacingDecider({"m1": Outcome.HOME}),
    )

    assert resolved == []
    assert balance == 800.0


@pytest.mark.asyncio
async def test_resolve_unknown_username_is_404(monkeypatch):
    _setup(monkeypatch)
    with pytest.raises(HTTPException) as exc:
        await betting_service.resolve_bets(username="nobody")
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_coin_flip_never_settles_a_draw_bet_as_won(monkeypatch):
    _, user_id = _setup(monkeypatch)
    for i in range(5):
        await _place(user_id, amount=10, outcome="DRAW", match_id=f"m{i}")

    resolved, _ = await betting_service.resolve_bets(
        user_id=user_id, decider=CoinFlipDecider(random.Random(7)),
    )

    assert len(resolved) == 5
    assert {b["status"] for b in resolved} == {"LOST"}
    assert {b["result"] for b in resolved} <= {"HOME", "AWAY"}


@pytest.mark.asyncio
async def test_history_is_newest_first_and_capped(monkeypatch):
    db, user_id = _setup(monkeypatch)
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    db.bets.docs = [
        {"_id": ObjectId(), "user_id": user_id, "match_id": f"m{i}", "placed_at": base + timedelta(hours=i)}
        for i in range(60)
    ]

    history = await betting_service.get_betting_history(user_id)

    assert len(history) == 50
    assert history[0]["match_id"] == "m59"
    assert history[-1]["match_id"] == "m10"
    assert await betting_service.get_betting_history(str(ObjectId())) == []


@pytest.mark.asyncio
async def test_betting_stats(monkeypatch):
    db, user_id = _setup(monkeypatch)
    db.bets.docs = [
        {"_id": ObjectId(), "user_id": user_id, "status": "WON"},
        {"_id": ObjectId(), "user_id": user_id, "status": "LOST"},
        {"_id": ObjectId(), "user_id": user_id, "status": "LOST"},
        {"_id": ObjectId(), "user_id": user_id, "status": "LOST"},
        {"_id": ObjectId(), "user_id": user_id, "status": "PENDING"},
    ]

    stats = await betting_service.get_betting_stats(user_id)

    assert stats == {
        "total_bets": 5,
        "won_bets": 1,
        "lost_bets": 3,
        "pending_bets": 1,
        "win_rate": 25.0,
        "total_coins": 1000.0,
    }
