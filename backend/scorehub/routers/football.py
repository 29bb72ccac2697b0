"""Public read-through proxy for football-data.org league data."""

import logging

import httpx
from fastapi import APIRouter, HTTPException, status

from scorehub.providers.football_data import ProviderNotConfigured, football_data_provider

logger = logging.getLogger("scorehub.football")
router = APIRouter(prefix="/api/football", tags=["football"])


def _upstream_message(exc: httpx.HTTPStatusError) -> str:
    try:
        return exc.response.json().get("message") or "Upstream request failed"
    except ValueError:
        return "Upstream request failed"


async def _proxy(fetch, league: str) -> dict:
    try:
        return await fetch(league)
    except ProviderNotConfigured as exc:
        logger.error("football-data.org request for %s: %s", league, exc)
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "API key is not configured")
    except httpx.HTTPStatusError as exc:
        logger.warning(
            "football-data.org returned %d for %s", exc.response.status_code, league,
        )
        raise HTTPException(exc.response.status_code, _upstream_message(exc))


@router.get("/matches/{league}")
async def get_league_matches(league: str):
    return await _proxy(football_data_provider.get_competition_matches, league)


@router.get("/standings/{league}")
async def get_league_standings(league: str):
    return await _proxy(football_data_provider.get_standings, league)
