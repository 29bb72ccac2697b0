"""User preferences: fantasy team, favourites and a side prediction list."""

import logging
from typing import Optional

from fastapi import HTTPException, status
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

import scorehub.database as _db
from scorehub.utils import utcnow

logger = logging.getLogger("scorehub.preferences")


def _default_preferences(user_id: str) -> dict:
    now = utcnow()
    return {
        "user_id": user_id,
        "fantasy_team": {"name": "My Team", "players": [], "points": 0},
        "predictions": [],
        "favorite_club": None,
        "favorite_players": [],
        "prediction_stats": {
            "total_predictions": 0,
            "correct_predictions": 0,
            "total_points": 0,
        },
        "created_at": now,
        "updated_at": now,
    }


async def get_or_create_preferences(user_id: str) -> dict:
    """Return the user's preference document, creating it on first access."""
    prefs = await _db.db.user_preferences.find_one({"user_id": user_id})
    if prefs:
        return prefs

    doc = _default_preferences(user_id)
    try:
        result = await _db.db.user_preferences.insert_one(doc)
    except DuplicateKeyError:
        # Created by a concurrent first access.
        return await _db.db.user_preferences.find_one({"user_id": user_id})
    doc["_id"] = result.inserted_id
    logger.info("Preferences created: user=%s", user_id)
    return doc


async def update_fantasy_team(user_id: str, team_name: Optional[str], players) -> dict:
    if players is None or not isinstance(players, list):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid players data")

    await get_or_create_preferences(user_id)
    update = {
        "fantasy_team.players": [
            p.model_dump() if hasattr(p, "model_dump") else dict(p) for p in players
        ],
        "updated_at": utcnow(),
    }
    if team_name:
        update["fantasy_team.name"] = team_name

    return await _db.db.user_preferences.find_one_and_update(
        {"user_id": user_id},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )


async def add_prediction(
    user_id: str,
    match_id: Optional[str],
    home_team_score: Optional[int],
    away_team_score: Optional[int],
) -> dict:
    """Append a prediction. A second prediction for the same match is rejected."""
    if not match_id or home_team_score is None or away_team_score is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid prediction data")
    if home_team_score < 0 or away_team_score < 0:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid prediction data")

    await get_or_create_preferences(user_id)
    prediction = {
        "match_id": match_id,
        "home_team_score": home_team_score,
        "away_team_score": away_team_score,
        "timestamp": utcnow(),
        "points": 0,
    }
    result = await _db.db.user_preferences.update_one(
        {"user_id": user_id, "predictions.match_id": {"$ne": match_id}},
        {
            "$push": {"predictions": prediction},
            "$inc": {"prediction_stats.total_predictions": 1},
            "$set": {"updated_at": utcnow()},
        },
    )
    if result.matched_count == 0:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Prediction already exists for this match")
    return prediction


async def update_favorites(user_id: str, club: Optional[dict], players: Optional[list]) -> dict:
    """Update only the favourites that were provided."""
    prefs = await get_or_create_preferences(user_id)
    update: dict = {}
    if club:
        update["favorite_club"] = club
    if players:
        update["favorite_players"] = players
    if not update:
        return prefs

    update["updated_at"] = utcnow()
    return await _db.db.user_preferences.find_one_and_update(
        {"user_id": user_id},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )


async def get_prediction_stats(user_id: str) -> dict:
    prefs = await get_or_create_preferences(user_id)
    return prefs.get("prediction_stats", {})
