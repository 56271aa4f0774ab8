"""Podcast lookups used by the episode services."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from airfeed.schemas.podcasts import Podcast
from airfeed.services.station_context import StationContext

logger = logging.getLogger(__name__)


class PodcastNotFoundError(Exception):
    """Raised when a podcast id does not match any stored podcast."""

    def __init__(self, podcast_id: int) -> None:
        super().__init__(f"Podcast {podcast_id} not found")
        self.podcast_id = podcast_id


async def get_podcast(db: AsyncSession, podcast_id: int) -> Podcast:
    """Fetch a podcast by primary key.

    Must be called inside an open transaction.

    Raises:
        PodcastNotFoundError: No podcast has this id.
    """
    podcast = await db.get(Podcast, podcast_id)
    if podcast is None:
        raise PodcastNotFoundError(podcast_id)
    return podcast


async def ensure_station_podcast(
    db: AsyncSession,
    station: StationContext,
    *,
    title: str,
) -> Podcast:
    """Create the station podcast row if it does not exist yet."""
    async with db.begin():
        podcast = await db.get(Podcast, station.station_podcast_id)
        if podcast is None:
            podcast = Podcast(id=station.station_podcast_id, title=title)
            db.add(podcast)
            await db.flush()
            logger.info(f"Created station podcast {station.station_podcast_id}")
    return podcast
