from fastapi import APIRouter

from scorehub.models.match import MatchResponse, match_to_response
from scorehub.services import match_service

router = APIRouter(prefix="/api/matches", tags=["matches"])


@router.get("/{match_id}", response_model=MatchResponse)
async def get_match(match_id: str):
    """Scraped match events, refreshed when older than the staleness window."""
    return match_to_response(await match_service.get_match_detail(match_id))
