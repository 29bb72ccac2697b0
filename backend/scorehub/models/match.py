from datetime import datetime
from typing import Optional

from scorehub.models.common import CamelModel


class MatchEvent(CamelModel):
    """One scraped timeline row (goal, card, substitution...)."""
    minute: str = ""
    player: str = "Unknown"
    event_type: str = "UNKNOWN"


class MatchResponse(CamelModel):
    id: str
    match_id: str
    home_team: str
    away_team: str
    match_url: Optional[str] = None
    events: list[MatchEvent] = []
    last_updated: datetime


def match_to_response(doc: dict) -> MatchResponse:
    return MatchResponse(
        id=str(doc["_id"]),
        match_id=doc["match_id"],
        home_team=doc.get("home_team", ""),
        away_team=doc.get("away_team", ""),
        match_url=doc.get("match_url"),
        events=[MatchEvent(**e) for e in doc.get("events", [])],
        last_updated=doc["last_updated"],
    )
