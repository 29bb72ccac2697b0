from fastapi import APIRouter, Depends

from scorehub.models.bet import DashboardResponse, DashboardStats, bet_to_response
from scorehub.models.match import match_to_response
from scorehub.services import betting_service, match_service
from scorehub.services.auth_service import get_current_user_id

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

_RECENT = 5


@router.get("/", response_model=DashboardResponse)
async def get_dashboard(user_id: str = Depends(get_current_user_id)):
    stats = await betting_service.get_betting_stats(user_id)
    bets = await betting_service.get_betting_history(user_id, limit=_RECENT)
    matches = await match_service.list_recent_matches(limit=_RECENT)
    return DashboardResponse(
        stats=DashboardStats(**stats),
        recent_bets=[bet_to_response(b) for b in bets],
        recent_matches=[match_to_response(m) for m in matches],
    )


@router.get("/stats", response_model=DashboardStats)
async def get_stats(user_id: str = Depends(get_current_user_id)):
    return DashboardStats(**await betting_service.get_betting_stats(user_id))
