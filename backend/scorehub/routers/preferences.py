"""Preference endpoints: all scoped to the caller."""

from fastapi import APIRouter, Depends

from scorehub.models.preference import (
    FantasyTeamUpdate,
    FavoritesUpdate,
    PredictionStats,
    PreferencePrediction,
    PreferencePredictionCreate,
    PreferenceResponse,
    preference_to_response,
)
from scorehub.services import preference_service
from scorehub.services.auth_service import get_current_user_id

router = APIRouter(prefix="/api/preferences", tags=["preferences"])


@router.get("/", response_model=PreferenceResponse)
async def get_preferences(user_id: str = Depends(get_current_user_id)):
    return preference_to_response(await preference_service.get_or_create_preferences(user_id))


@router.put("/fantasy-team", response_model=PreferenceResponse)
async def update_fantasy_team(body: FantasyTeamUpdate, user_id: str = Depends(get_current_user_id)):
    prefs = await preference_service.update_fantasy_team(user_id, body.team_name, body.players)
    return preference_to_response(prefs)


@router.post("/prediction", response_model=PreferencePrediction)
async def add_prediction(body: PreferencePredictionCreate, user_id: str = Depends(get_current_user_id)):
    prediction = await preference_service.add_prediction(
        user_id, body.match_id, body.home_team_score, body.away_team_score,
    )
    return PreferencePrediction(**prediction)


@router.put("/favorites", response_model=PreferenceResponse)
async def update_favorites(body: FavoritesUpdate, user_id: str = Depends(get_current_user_id)):
    prefs = await preference_service.update_favorites(
        user_id,
        club=body.club.model_dump() if body.club else None,
        players=[p.model_dump() for p in body.players] if body.players else None,
    )
    return preference_to_response(prefs)


@router.get("/prediction-stats", response_model=PredictionStats)
async def get_prediction_stats(user_id: str = Depends(get_current_user_id)):
    return PredictionStats(**await preference_service.get_prediction_stats(user_id))
