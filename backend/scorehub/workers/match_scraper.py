import logging

from scorehub.providers.sofascore import match_id_from_url, sofascore_provider
from scorehub.services.match_service import upsert_match
from scorehub.workers._state import set_synced

logger = logging.getLogger("scorehub.match_scraper")

STATE_KEY = "match_scraper"


async def run_scrape_cycle() -> int:
    """Scrape events for every upcoming match and upsert them.

    Matches are processed one at a time. Returns the number of matches stored.
    Scheduled with max_instances=1, so a slow cycle is skipped, never overlapped.
    """
    logger.info("Fetching upcoming match ids")
    matches = await sofascore_provider.fetch_upcoming_match_identifiers()
    if not matches:
        logger.info("No matches found")
        return 0

    stored = 0
    for match in matches:
        events = await sofascore_provider.scrape_match_events(match["match_url"])
        await upsert_match(
            match_id_from_url(match["match_url"]),
            events,
            home_team=match["home_team"],
            away_team=match["away_team"],
            match_url=match["match_url"],
        )
        stored += 1
        logger.debug(
            "Updated events for %s vs %s (%d events)",
            match["home_team"], match["away_team"], len(events),
        )

    await set_synced(STATE_KEY, matches=stored)
    logger.info("Scrape cycle done: %d matches", stored)
    return stored
