"""User preference models: fantasy team, favourites, side prediction list."""

from datetime import datetime
from typing import Optional

from scorehub.models.common import CamelModel


class FantasyPlayer(CamelModel):
    player_id: Optional[str] = None
    name: Optional[str] = None
    position: Optional[str] = None
    club: Optional[str] = None


class FantasyTeam(CamelModel):
    name: str = "My Team"
    players: list[FantasyPlayer] = []
    points: int = 0


class FavoriteClub(CamelModel):
    club_id: Optional[str] = None
    name: Optional[str] = None
    league: Optional[str] = None


class FavoritePlayer(CamelModel):
    player_id: Optional[str] = None
    name: Optional[str] = None
    club: Optional[str] = None
    position: Optional[str] = None


class PreferencePrediction(CamelModel):
    match_id: str
    home_team_score: int
    away_team_score: int
    timestamp: datetime
    points: int = 0


class PredictionStats(CamelModel):
    total_predictions: int = 0
    correct_predictions: int = 0
    total_points: int = 0


class PreferenceResponse(CamelModel):
    id: str
    user_id: str
    fantasy_team: FantasyTeam
    predictions: list[PreferencePrediction] = []
    favorite_club: Optional[FavoriteClub] = None
    favorite_players: list[FavoritePlayer] = []
    prediction_stats: PredictionStats
    created_at: datetime
    updated_at: datetime


# ---------- Requests ----------

class FantasyTeamUpdate(CamelModel):
    team_name: Optional[str] = None
    players: Optional[list[FantasyPlayer]] = None


class PreferencePredictionCreate(CamelModel):
    match_id: Optional[str] = None
    home_team_score: Optional[int] = None
    away_team_score: Optional[int] = None


class FavoritesUpdate(CamelModel):
    club: Optional[FavoriteClub] = None
    players: Optional[list[FavoritePlayer]] = None


def preference_to_response(doc: dict) -> PreferenceResponse:
    return PreferenceResponse(
        id=str(doc["_id"]),
        user_id=doc["user_id"],
        fantasy_team=FantasyTeam(**doc.get("fantasy_team", {})),
        predictions=[PreferencePrediction(**p) for p in doc.get("predictions", [])],
        favorite_club=FavoriteClub(**doc["favorite_club"]) if doc.get("favorite_club") else None,
        favorite_players=[FavoritePlayer(**p) for p in doc.get("favorite_players", [])],
        prediction_stats=PredictionStats(**doc.get("prediction_stats", {})),
        created_at=doc["created_at"],
        updated_at=doc["updated_at"],
    )
