"""Score predictions: one per (user, match), settled against a ResultProvider.

Predictions live embedded in the user document. Scoring tiers:
exact score 10 points (WON), correct result direction 1 point (PARTIAL),
anything else 0 (LOST).
"""

import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId
from fastapi import HTTPException, status

import scorehub.database as _db
from scorehub.models.user import PredictionStatus
from scorehub.providers.results import (
    MatchScore,
    ResultProvider,
    get_prediction_result_provider,
)
from scorehub.services import account_service
from scorehub.utils import ensure_utc, utcnow

logger = logging.getLogger("scorehub.prediction")

EXACT_SCORE_POINTS = 10
CORRECT_RESULT_POINTS = 1
LEADERBOARD_LIMIT = 50
_SUBMIT_ATTEMPTS = 3


def score_prediction(home_score: int, away_score: int, actual: MatchScore) -> tuple[PredictionStatus, int]:
    """Compare a predicted scoreline with the actual one."""
    if home_score == actual.home and away_score == actual.away:
        return PredictionStatus.WON, EXACT_SCORE_POINTS
    if MatchScore(home_score, away_score).outcome == actual.outcome:
        return PredictionStatus.PARTIAL, CORRECT_RESULT_POINTS
    return PredictionStatus.LOST, 0


def _validate_score(value, field: str) -> int:
    if value is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Please provide matchId, homeScore and awayScore")
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"{field} must be a non-negative integer")
    return value


async def submit_prediction(
    user_id: str,
    match_id: Optional[str],
    home_score: Optional[int],
    away_score: Optional[int],
    home_team: Optional[str] = None,
    away_team: Optional[str] = None,
    match_date: Optional[datetime] = None,
    competition: Optional[str] = None,
) -> dict:
    """Create or replace the user's prediction for ``match_id``.

    An existing entry for the match, evaluated or not, is overwritten in place
    with a fresh PENDING one. Otherwise the entry is appended with a push
    guarded on the match id being absent; losing that guard to a concurrent
    submission falls back to the in-place overwrite.
    """
    if not match_id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Please provide matchId, homeScore and awayScore")
    home = _validate_score(home_score, "homeScore")
    away = _validate_score(away_score, "awayScore")

    oid = ObjectId(user_id)
    if not await _db.db.users.find_one({"_id": oid}, {"_id": 1}):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")

    now = utcnow()
    prediction = {
        "match_id": match_id,
        "home_team": home_team,
        "away_team": away_team,
        "home_score": home,
        "away_score": away,
        "status": PredictionStatus.PENDING.value,
        "points": 0,
        "match_date": ensure_utc(match_date) if match_date else None,
        "competition": competition,
        "submitted_at": now,
        "evaluated_at": None,
    }

    for _ in range(_SUBMIT_ATTEMPTS):
        replaced = await _db.db.users.update_one(
            {"_id": oid, "predictions.match_id": match_id},
            {"$set": {"predictions.$": prediction, "updated_at": now}},
        )
        if replaced.matched_count:
            logger.info("Prediction replaced: user=%s match=%s %d-%d", user_id, match_id, home, away)
            return prediction

        pushed = await _db.db.users.update_one(
            {"_id": oid, "predictions.match_id": {"$ne": match_id}},
            {"$push": {"predictions": prediction}, "$set": {"updated_at": now}},
        )
        if pushed.matched_count:
            logger.info("Prediction submitted: user=%s match=%s %d-%d", user_id, match_id, home, away)
            return prediction

    logger.error("Prediction submit kept conflicting: user=%s match=%s", user_id, match_id)
    raise HTTPException(status.HTTP_409_CONFLICT, "Prediction is being updated concurrently, please retry")


async def evaluate_predictions(
    user_id: str, provider: Optional[ResultProvider] = None,
) -> tuple[int, list[dict]]:
    """Settle the user's PENDING predictions. Returns (points_earned, predictions).

    Predictions without an available result stay PENDING. Each transition and
    its points award are one conditional update, so re-running never awards
    a prediction twice.
    """
    user = await _db.db.users.find_one({"_id": ObjectId(user_id)})
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")

    pending = [
        p for p in user.get("predictions", [])
        if p.get("status") == PredictionStatus.PENDING.value
    ]
    provider = provider or get_prediction_result_provider(pending)

    points_earned = 0
    for prediction in pending:
        match_id = prediction["match_id"]
        actual = await provider.get_result(match_id)
        if actual is None:
            continue

        outcome, points = score_prediction(prediction["home_score"], prediction["away_score"], actual)
        awarded = await account_service.award_points(
            user_id, points,
            guard={"predictions": {"$elemMatch": {
                "match_id": match_id,
                "status": PredictionStatus.PENDING.value,
                "submitted_at": prediction.get("submitted_at"),
            }}},
            guard_set={
                "predictions.$.status": outcome.value,
                "predictions.$.points": points,
                "predictions.$.evaluated_at": utcnow(),
            },
            reference_type="prediction",
            reference_id=f"{user_id}:{match_id}",
            description=f"Prediction {outcome.value} for match {match_id}",
        )
        if awarded:
            points_earned += points

    user = await _db.db.users.find_one({"_id": ObjectId(user_id)}, {"predictions": 1})
    logger.info(
        "Predictions evaluated: user=%s pending=%d points=%d",
        user_id, len(pending), points_earned,
    )
    return points_earned, user.get("predictions", []) if user else []


async def get_leaderboard(limit: int = LEADERBOARD_LIMIT) -> list[dict]:
    """Users ranked by prediction points."""
    users = await _db.db.users.find(
        {}, {"username": 1, "points": 1},
    ).sort("points", -1).limit(limit).to_list(length=limit)
    return [
        {"rank": i, "username": u["username"], "points": u.get("points", 0)}
        for i, u in enumerate(users, start=1)
    ]
