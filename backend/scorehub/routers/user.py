"""Profile and prediction endpoints under /api/user."""

import logging

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pymongo import ReturnDocument

import scorehub.database as _db
from scorehub.models.user import (
    EvaluateResponse,
    LeaderboardEntry,
    PredictionCreate,
    ProfileUpdate,
    SubmitPredictionResponse,
    UserProfileResponse,
    prediction_to_response,
    user_to_profile,
)
from scorehub.services import prediction_service
from scorehub.services.audit_service import log_audit
from scorehub.services.auth_service import get_current_user_id
from scorehub.utils import utcnow

logger = logging.getLogger("scorehub.user")
router = APIRouter(prefix="/api/user", tags=["user"])

_PROFILE_PROJECTION = {"hashed_password": 0, "otp": 0, "reset_token": 0}


@router.get("/profile", response_model=UserProfileResponse)
async def get_profile(user_id: str = Depends(get_current_user_id)):
    user = await _db.db.users.find_one({"_id": ObjectId(user_id)}, _PROFILE_PROJECTION)
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    return user_to_profile(user)


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate, request: Request, user_id: str = Depends(get_current_user_id),
):
    user = await _db.db.users.find_one_and_update(
        {"_id": ObjectId(user_id)},
        {"$set": {"username": body.username, "updated_at": utcnow()}},
        projection=_PROFILE_PROJECTION,
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")

    await log_audit(action="PROFILE_UPDATED", actor_id=user_id, request=request)
    return {
        "message": "Profile updated successfully",
        "user": user_to_profile(user).model_dump(by_alias=True),
    }


# ---------- Predictions ----------

@router.post("/predict", response_model=SubmitPredictionResponse)
async def submit_prediction(body: PredictionCreate, user_id: str = Depends(get_current_user_id)):
    prediction = await prediction_service.submit_prediction(
        user_id,
        match_id=body.match_id,
        home_score=body.home_score,
        away_score=body.away_score,
        home_team=body.home_team,
        away_team=body.away_team,
        match_date=body.match_date,
        competition=body.competition,
    )
    return SubmitPredictionResponse(
        message="Prediction submitted successfully",
        prediction=prediction_to_response(prediction),
    )


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_predictions(user_id: str = Depends(get_current_user_id)):
    points, predictions = await prediction_service.evaluate_predictions(user_id)
    return EvaluateResponse(
        message="Predictions evaluated",
        points_earned=points,
        predictions=[prediction_to_response(p) for p in predictions],
    )


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def get_leaderboard():
    """Public: top users by prediction points. Exposes username and points only."""
    return await prediction_service.get_leaderboard()
