"""
backend/scorehub/providers/football_data.py

Purpose:
    Adapter for football-data.org: league fixtures and standings for the
    public proxy routes, and final scores as a settlement ResultProvider.

Dependencies:
    - scorehub.providers.http_client
    - scorehub.providers.results
"""

import logging
import time
from typing import Any, Optional

import httpx

from scorehub.config import settings
from scorehub.providers.http_client import ResilientClient
from scorehub.providers.results import MatchScore, ResultProvider

logger = logging.getLogger("scorehub.football_data")


class ProviderNotConfigured(RuntimeError):
    """The football-data.org API key is missing."""


class FootballDataProvider(ResultProvider):
    """football-data.org client with a short in-memory response cache."""

    def __init__(self):
        self._client = ResilientClient("football_data")
        self._cache: dict[str, dict[str, Any]] = {}
        self._cache_ttl = 300  # 5 minutes

    def _get_cached(self, key: str) -> Optional[dict]:
        entry = self._cache.get(key)
        if entry and (time.monotonic() - entry["ts"]) < self._cache_ttl:
            return entry["data"]
        return None

    def _set_cache(self, key: str, data: dict) -> None:
        self._cache[key] = {"data": data, "ts": time.monotonic()}

    async def _get(self, path: str, params: Optional[dict] = None) -> dict:
        """GET a football-data.org resource. Raises httpx.HTTPStatusError on 4xx/5xx."""
        if not settings.FOOTBALL_DATA_API_KEY:
            raise ProviderNotConfigured("football-data.org API key is not configured")
        resp = await self._client.get(
            f"{settings.FOOTBALL_DATA_BASE_URL}{path}",
            params=params,
            headers={"X-Auth-Token": settings.FOOTBALL_DATA_API_KEY},
        )
        resp.raise_for_status()
        return resp.json()

    async def get_competition_matches(self, league: str) -> dict:
        """All matches of a competition (e.g. ``PL``) for the configured season."""
        cache_key = f"matches:{league}"
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached
        data = await self._get(
            f"/competitions/{league}/matches",
            params={"season": settings.FOOTBALL_DATA_SEASON},
        )
        self._set_cache(cache_key, data)
        return data

    async def get_standings(self, league: str) -> dict:
        cache_key = f"standings:{league}"
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached
        data = await self._get(
            f"/competitions/{league}/standings",
            params={"season": settings.FOOTBALL_DATA_SEASON},
        )
        self._set_cache(cache_key, data)
        return data

    async def get_result(self, match_id: str) -> Optional[MatchScore]:
        """Full-time score of a finished match, None otherwise (or on any failure)."""
        try:
            data = await self._get(f"/matches/{match_id}")
        except (httpx.HTTPError, ProviderNotConfigured, ValueError) as exc:
            logger.warning("Result lookup failed for match %s: %s", match_id, exc)
            return None

        match = data.get("match", data)
        if match.get("status") != "FINISHED":
            return None
        full_time = (match.get("score") or {}).get("fullTime") or {}
        home, away = full_time.get("home"), full_time.get("away")
        if home is None or away is None:
            return None
        return MatchScore(int(home), int(away))


football_data_provider = FootballDataProvider()
