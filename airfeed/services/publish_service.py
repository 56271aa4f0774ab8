"""Publish and unpublish local media files on the station podcast."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from airfeed.schemas.base import utcnow
from airfeed.schemas.media_files import MediaFile
from airfeed.schemas.podcast_episodes import PodcastEpisode
from airfeed.services.media_file_service import MediaFileNotFoundError
from airfeed.services.podcast_episode_service import (
    PodcastEpisodeNotFoundError,
    build_episode,
)
from airfeed.services.station_context import StationContext

logger = logging.getLogger(__name__)


def station_download_url(file_id: int, station: StationContext) -> str:
    """Public download URL of a station file; also used as the episode guid."""
    return station.absolute_url(f"rest/media/{file_id}/download")


async def publish(
    db: AsyncSession,
    file_id: int,
    station: StationContext,
) -> PodcastEpisode:
    """Publish a file to the station podcast.

    Idempotent: if the station podcast already has an episode for this file,
    that episode is returned unchanged, including when a concurrent publish
    wins the insert. The file already exists locally, so the episode is
    created with its file attached and no download is queued.

    Raises:
        MediaFileNotFoundError: The file does not exist.
    """
    try:
        async with db.begin():
            existing = await _find_station_episode(db, file_id, station)
            if existing is not None:
                return existing

            media_file = await db.get(MediaFile, file_id)
            if media_file is None:
                raise MediaFileNotFoundError(file_id)

            url = station_download_url(file_id, station)
            episode = build_episode(
                station.station_podcast_id,
                url,
                url,
                utcnow(),
                title=media_file.track_title or media_file.name,
                file_id=file_id,
            )
            db.add(episode)
            await db.flush()
    except IntegrityError:
        # A concurrent publish inserted the same guid first
        async with db.begin():
            existing = await _find_station_episode(db, file_id, station)
        if existing is None:
            raise
        logger.info(f"File {file_id} was published concurrently as episode {existing.id}")
        return existing

    logger.info(f"Published file {file_id} as station episode {episode.id}")
    return episode


async def unpublish(
    db: AsyncSession,
    file_id: int,
    station: StationContext,
) -> None:
    """Remove a file's episode from the station podcast.

    Raises:
        PodcastEpisodeNotFoundError: The file is not published.
    """
    async with db.begin():
        episode = await _find_station_episode(db, file_id, station)
        if episode is None:
            raise PodcastEpisodeNotFoundError(
                f"File {file_id} is not published on the station podcast"
            )
        await db.delete(episode)

    logger.info(f"Unpublished file {file_id}")


async def _find_station_episode(
    db: AsyncSession,
    file_id: int,
    station: StationContext,
) -> Optional[PodcastEpisode]:
    result = await db.execute(
        select(PodcastEpisode)
        .where(
            PodcastEpisode.podcast_id == station.station_podcast_id,  # type: ignore[arg-type]
            PodcastEpisode.file_id == file_id,  # type: ignore[arg-type]
        )
        .limit(1)
    )
    return result.scalar_one_or_none()
