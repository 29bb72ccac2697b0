"""Scraped match documents: upsert, staleness and on-demand refresh."""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException, status
from pymongo import ReturnDocument

import scorehub.database as _db
from scorehub.config import settings
from scorehub.providers.sofascore import match_id_from_url, sofascore_provider
from scorehub.utils import ensure_utc, utcnow

logger = logging.getLogger("scorehub.matches")


async def upsert_match(
    match_id: str,
    events: list[dict],
    home_team: Optional[str] = None,
    away_team: Optional[str] = None,
    match_url: Optional[str] = None,
) -> dict:
    """Replace the events of a match (created if unknown) and stamp last_updated."""
    update: dict = {"events": events, "last_updated": utcnow()}
    if home_team is not None:
        update["home_team"] = home_team
    if away_team is not None:
        update["away_team"] = away_team
    if match_url is not None:
        update["match_url"] = match_url

    return await _db.db.matches.find_one_and_update(
        {"match_id": match_id},
        {"$set": update},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


def is_stale(match: dict) -> bool:
    last = match.get("last_updated")
    if not last:
        return True
    age = utcnow() - ensure_utc(last)
    return age > timedelta(seconds=settings.MATCH_STALE_SECONDS)


async def _find_upcoming(match_id: str) -> Optional[dict]:
    for candidate in await sofascore_provider.fetch_upcoming_match_identifiers():
        if match_id_from_url(candidate["match_url"]) == match_id:
            return candidate
    return None


async def refresh_match(match_id: str, existing: Optional[dict] = None) -> Optional[dict]:
    """Scrape a match again and upsert it.

    Returns None when the match cannot be located, or when a known match
    with events comes back empty (treated as a failed scrape).
    """
    if existing and existing.get("match_url"):
        info = {
            "match_url": existing["match_url"],
            "home_team": existing.get("home_team"),
            "away_team": existing.get("away_team"),
        }
    else:
        info = await _find_upcoming(match_id)
        if info is None:
            return None

    events = await sofascore_provider.scrape_match_events(info["match_url"])
    if not events and existing and existing.get("events"):
        logger.warning("Refresh of match %s returned no events, keeping stored data", match_id)
        return None

    return await upsert_match(
        match_id, events,
        home_team=info.get("home_team"),
        away_team=info.get("away_team"),
        match_url=info["match_url"],
    )


async def get_match_detail(match_id: str) -> dict:
    """Stored match if fresh, otherwise refreshed through the scraper.

    A stale match whose refresh fails is served as stored.
    """
    match = await _db.db.matches.find_one({"match_id": match_id})
    if match and not is_stale(match):
        return match

    refreshed = await refresh_match(match_id, match)
    if refreshed:
        return refreshed
    if match:
        return match
    raise HTTPException(status.HTTP_404_NOT_FOUND, "Match not found")


async def list_recent_matches(limit: int = 5) -> list[dict]:
    return await _db.db.matches.find().sort("last_updated", -1).limit(limit).to_list(length=limit)
