"""Betting endpoints: place, resolve, history, balance, ledger."""

from fastapi import APIRouter, Depends, Query, status

from scorehub.models.bet import (
    BalanceResponse,
    BetCreate,
    BetResponse,
    PlaceBetResponse,
    ResolveBetsRequest,
    ResolveBetsResponse,
    bet_to_response,
)
from scorehub.services import account_service, betting_service
from scorehub.services.auth_service import get_current_user_id
from scorehub.utils import serialize_doc

router = APIRouter(prefix="/api/bet", tags=["betting"])


@router.post("/place", response_model=PlaceBetResponse, status_code=status.HTTP_201_CREATED)
async def place_bet(body: BetCreate, user_id: str = Depends(get_current_user_id)):
    bet, new_balance = await betting_service.place_bet(
        user_id,
        match_id=body.match_id,
        home_team=body.home_team,
        away_team=body.away_team,
        competition=body.competition,
        bet_amount=body.bet_amount,
        odds=body.odds,
        selected_outcome=body.selected_outcome,
        match_date=body.match_date,
    )
    return PlaceBetResponse(
        message="Bet placed successfully",
        bet=bet_to_response(bet),
        new_balance=new_balance,
    )


@router.post("/resolve", response_model=ResolveBetsResponse)
async def resolve_bets(
    body: ResolveBetsRequest | None = None,
    user_id: str = Depends(get_current_user_id),
):
    """Settle all pending bets of ``username`` (the caller when omitted)."""
    username = body.username if body else None
    if username:
        resolved, new_balance = await betting_service.resolve_bets(username=username)
    else:
        resolved, new_balance = await betting_service.resolve_bets(user_id=user_id)
    return ResolveBetsResponse(
        message=f"Resolved {len(resolved)} bet(s)",
        resolved_bets=[bet_to_response(b) for b in resolved],
        new_balance=new_balance,
    )


@router.get("/history", response_model=list[BetResponse])
async def get_history(user_id: str = Depends(get_current_user_id)):
    bets = await betting_service.get_betting_history(user_id)
    return [bet_to_response(b) for b in bets]


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(user_id: str = Depends(get_current_user_id)):
    return BalanceResponse(balance=await betting_service.get_user_balance(user_id))


@router.get("/transactions")
async def get_transactions(
    limit: int = Query(50, ge=1, le=200),
    skip: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
):
    """Coin ledger of the caller, newest first."""
    txs = await account_service.get_transactions(user_id, limit=limit, skip=skip)
    return [serialize_doc(t) for t in txs]
