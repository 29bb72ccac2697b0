"""
backend/scorehub/providers/sofascore.py

Purpose:
    sofascore adapter: upcoming match identifiers from the public JSON API and
    per-match event timelines scraped from the match page HTML.

Dependencies:
    - scorehub.providers.http_client
    - bs4
"""

import logging
from typing import Any

import httpx
from bs4 import BeautifulSoup

from scorehub.config import settings
from scorehub.providers.http_client import ResilientClient

logger = logging.getLogger("scorehub.sofascore")

# Timeline markup on the match page.
EVENT_ROW_SELECTOR = ".sc-9410c37-0"
EVENT_MINUTE_SELECTOR = ".sc-9410c37-1"
EVENT_PLAYER_SELECTOR = ".sc-9410c37-3"

_BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}


def match_id_from_url(match_url: str) -> str:
    """The match key is the last path segment of the match URL."""
    return match_url.rstrip("/").split("/")[-1]


def parse_match_events(html: str) -> list[dict[str, str]]:
    """Extract ``{minute, player, event_type}`` rows from a match page."""
    soup = BeautifulSoup(html, "html.parser")
    events = []
    for row in soup.select(EVENT_ROW_SELECTOR):
        minute = row.select_one(EVENT_MINUTE_SELECTOR)
        player = row.select_one(EVENT_PLAYER_SELECTOR)
        icon = row.find("img")
        events.append({
            "minute": minute.get_text(strip=True) if minute else "",
            "player": (player.get_text(strip=True) if player else "") or "Unknown",
            "event_type": (icon.get("alt") if icon else "") or "UNKNOWN",
        })
    return events


def _parse_scheduled(payload: dict[str, Any]) -> list[dict[str, str]]:
    web = settings.SOFASCORE_WEB_URL.rstrip("/")
    matches = []
    for event in payload.get("events", []):
        home, away = event["homeTeam"], event["awayTeam"]
        matches.append({
            "id": str(event["id"]),
            "home_team": home["name"],
            "away_team": away["name"],
            "match_url": f"{web}/football/{home['slug']}-{away['slug']}/{event['id']}",
        })
    return matches


class SofascoreProvider:
    """Both calls degrade to an empty list on any failure; the caller decides."""

    def __init__(self):
        self._client = ResilientClient("sofascore", headers=_BROWSER_HEADERS)

    async def fetch_upcoming_match_identifiers(self) -> list[dict[str, str]]:
        url = f"{settings.SOFASCORE_API_URL.rstrip('/')}/sport/football/scheduled-matches"
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
            return _parse_scheduled(resp.json())
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.error("Fetching scheduled matches failed: %s", exc)
            return []

    async def scrape_match_events(self, match_url: str) -> list[dict[str, str]]:
        try:
            resp = await self._client.get(match_url)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Scraping %s failed: %s", match_url, exc)
            return []
        return parse_match_events(resp.text)


sofascore_provider = SofascoreProvider()
