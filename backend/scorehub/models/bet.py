"""Wagering models: bets, balances, settlement results, dashboard stats."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict

from scorehub.models.common import CamelModel
from scorehub.models.match import MatchResponse


class Outcome(str, Enum):
    HOME = "HOME"
    DRAW = "DRAW"
    AWAY = "AWAY"


class BetStatus(str, Enum):
    PENDING = "PENDING"
    WON = "WON"
    LOST = "LOST"


class BetInDB(CamelModel):
    """Bet document as stored in MongoDB. Written once at placement, once at resolution."""
    model_config = ConfigDict(**CamelModel.model_config, use_enum_values=True)

    user_id: str
    username: str
    match_id: str
    home_team: str
    away_team: str
    competition: str
    bet_amount: float
    odds: float
    selected_outcome: Outcome
    potential_winnings: float  # bet_amount * odds
    status: BetStatus = BetStatus.PENDING
    result: Optional[Outcome] = None
    match_date: datetime
    placed_at: datetime
    resolved_at: Optional[datetime] = None


class BetCreate(CamelModel):
    """Request body for placing a bet.

    bet_amount and odds are parsed by the betting service so that numeric
    strings ("200") are accepted and bad values yield a domain message.
    """
    match_id: str
    home_team: str
    away_team: str
    competition: str
    bet_amount: Any = None
    odds: Any = None
    selected_outcome: Outcome
    match_date: datetime


class BetResponse(CamelModel):
    id: str
    user_id: str
    username: str
    match_id: str
    home_team: str
    away_team: str
    competition: str
    bet_amount: float
    odds: float
    selected_outcome: str
    potential_winnings: float
    status: str
    result: Optional[str] = None
    match_date: datetime
    placed_at: datetime
    resolved_at: Optional[datetime] = None


class PlaceBetResponse(CamelModel):
    message: str
    bet: BetResponse
    new_balance: float


class ResolveBetsRequest(CamelModel):
    """Resolve all pending bets of a user. Defaults to the caller."""
    username: Optional[str] = None


class ResolveBetsResponse(CamelModel):
    message: str
    resolved_bets: list[BetResponse]
    new_balance: float


class BalanceResponse(CamelModel):
    balance: float


class DashboardStats(CamelModel):
    total_bets: int
    won_bets: int
    lost_bets: int
    pending_bets: int
    win_rate: float  # percent of settled bets that won
    total_coins: float


class DashboardResponse(CamelModel):
    stats: DashboardStats
    recent_bets: list[BetResponse]
    recent_matches: list[MatchResponse]


def bet_to_response(doc: dict) -> BetResponse:
    return BetResponse(
        id=str(doc["_id"]),
        user_id=doc["user_id"],
        username=doc.get("username", ""),
        match_id=doc["match_id"],
        home_team=doc["home_team"],
        away_team=doc["away_team"],
        competition=doc.get("competition", ""),
        bet_amount=doc["bet_amount"],
        odds=doc["odds"],
        selected_outcome=doc["selected_outcome"],
        potential_winnings=doc["potential_winnings"],
        status=doc["status"],
        result=doc.get("result"),
        match_date=doc["match_date"],
        placed_at=doc["placed_at"],
        resolved_at=doc.get("resolved_at"),
    )
