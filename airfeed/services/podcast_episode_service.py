"""Podcast episode registry.

Stores episode placeholders keyed by their feed guid, hands them to the
download dispatcher, and lists episodes for the station podcast and for
imported feeds.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from functools import partial
from typing import Any, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from airfeed.models.podcast_episodes import (
    EpisodeImportItem,
    FeedEpisodeRead,
    MediaFileRead,
    StationEpisodeRead,
)
from airfeed.schemas.download_tasks import DownloadTask
from airfeed.schemas.media_files import MediaFile
from airfeed.schemas.base import utcnow
from airfeed.schemas.podcast_episodes import PodcastEpisode
from airfeed.services.download_dispatcher import JobDispatcher, enqueue_download
from airfeed.services.feed_merge_service import merge_feed_with_registry
from airfeed.services.media_file_service import (
    get_sanitized_file_by_id,
    sanitize_media_file,
)
from airfeed.services.podcast_feed_service import FeedFetcher
from airfeed.services.podcast_service import get_podcast
from airfeed.services.station_context import StationContext

logger = logging.getLogger(__name__)

DEFAULT_EPISODE_LIMIT = 10

SORT_COLUMNS = {
    "publication_date": PodcastEpisode.publication_date,
    "id": PodcastEpisode.id,
    "episode_guid": PodcastEpisode.episode_guid,
    "episode_title": PodcastEpisode.episode_title,
    "download_url": PodcastEpisode.download_url,
}


class PodcastEpisodeNotFoundError(Exception):
    """Raised when no episode matches the requested id or file."""


class DuplicatePodcastEpisodeError(Exception):
    """Raised when an episode with the same guid is already stored."""

    def __init__(self, guid: str) -> None:
        super().__init__(f"Episode already exists: {guid}")
        self.guid = guid


def build_episode(
    podcast_id: int,
    url: str,
    guid: str,
    publication_date: datetime,
    *,
    title: Optional[str] = None,
    description: Optional[str] = None,
    file_id: Optional[int] = None,
) -> PodcastEpisode:
    """Construct an (unsaved) episode row."""
    now = utcnow()
    return PodcastEpisode(
        podcast_id=podcast_id,
        download_url=url,
        episode_guid=guid,
        publication_date=publication_date,
        episode_title=title,
        episode_description=description,
        file_id=file_id,
        created_at=now,
        updated_at=now,
    )


async def add_placeholder(
    db: AsyncSession,
    podcast_id: int,
    episode: EpisodeImportItem,
) -> PodcastEpisode:
    """Store an episode as a placeholder until its download completes.

    Args:
        db: Async database session
        podcast_id: Podcast the episode belongs to
        episode: Episode data from the feed

    Returns:
        The stored placeholder

    Raises:
        DuplicatePodcastEpisodeError: The guid is already stored (nothing
            is written).
        PodcastNotFoundError: The podcast does not exist.
    """
    async with db.begin():
        await get_podcast(db, podcast_id)
        existing = await db.execute(
            select(PodcastEpisode.id).where(  # type: ignore[call-overload]
                PodcastEpisode.episode_guid == episode.guid  # type: ignore[arg-type]
            )
        )
        duplicate = existing.scalar_one_or_none() is not None
    # Raised after commit: a rollback would expire every row the session holds
    if duplicate:
        raise DuplicatePodcastEpisodeError(episode.guid)

    try:
        async with db.begin():
            placeholder = build_episode(
                podcast_id,
                episode.enclosure,
                episode.guid,
                episode.pub_date,
                title=episode.title,
                description=episode.description,
            )
            db.add(placeholder)
            await db.flush()
    except IntegrityError as exc:
        # A concurrent insert won the race for this guid
        raise DuplicatePodcastEpisodeError(episode.guid) from exc

    return placeholder


async def add_placeholders(
    db: AsyncSession,
    podcast_id: int,
    episodes: Iterable[EpisodeImportItem],
) -> list[PodcastEpisode]:
    """Store placeholders for a batch of episodes, skipping duplicates.

    Best-effort: each duplicate is logged and dropped, the rest are stored.

    Returns:
        The stored placeholders, in input order
    """
    stored: list[PodcastEpisode] = []
    raced = False
    for episode in episodes:
        try:
            placeholder = await add_placeholder(db, podcast_id, episode)
        except DuplicatePodcastEpisodeError as exc:
            logger.warning(str(exc))
            raced = raced or exc.__cause__ is not None
            continue
        stored.append(placeholder)

    if raced and stored:
        # The rolled-back insert expired the rows stored before it
        async with db.begin():
            for placeholder in stored:
                await db.refresh(placeholder)
    return stored


async def import_episode(
    db: AsyncSession,
    podcast_id: int,
    episode: EpisodeImportItem,
    dispatcher: JobDispatcher,
    station: StationContext,
) -> PodcastEpisode:
    """Store a placeholder for one episode and queue its download."""
    placeholder = await add_placeholder(db, podcast_id, episode)
    await enqueue_download(
        db, placeholder.id, placeholder.download_url, dispatcher, station  # type: ignore[arg-type]
    )
    return placeholder


async def download_episodes(
    db: AsyncSession,
    episodes: Iterable[PodcastEpisode],
    dispatcher: JobDispatcher,
    station: StationContext,
) -> list[DownloadTask]:
    """Queue one download job per stored episode."""
    tasks: list[DownloadTask] = []
    for episode in episodes:
        task = await enqueue_download(
            db, episode.id, episode.download_url, dispatcher, station  # type: ignore[arg-type]
        )
        tasks.append(task)
    return tasks


async def get_episode_by_id(db: AsyncSession, episode_id: int) -> PodcastEpisode:
    """Fetch an episode by id.

    Raises:
        PodcastEpisodeNotFoundError: No episode has this id.
    """
    async with db.begin():
        episode = await db.get(PodcastEpisode, episode_id)
    if episode is None:
        raise PodcastEpisodeNotFoundError(f"Episode {episode_id} not found")
    return episode


async def delete_episode_by_id(db: AsyncSession, episode_id: int) -> None:
    """Delete an episode by id.

    Raises:
        PodcastEpisodeNotFoundError: No episode has this id.
    """
    async with db.begin():
        episode = await db.get(PodcastEpisode, episode_id)
        if episode is None:
            raise PodcastEpisodeNotFoundError(f"Episode {episode_id} not found")
        await db.delete(episode)
    logger.info(f"Deleted episode {episode_id}")


async def list_episodes_by_podcast(
    db: AsyncSession,
    podcast_id: int,
    station: StationContext,
    *,
    offset: int = 0,
    limit: int = DEFAULT_EPISODE_LIMIT,
    sort_column: str = "publication_date",
    sort_dir: str = "ASC",
) -> list[PodcastEpisode]:
    """Return one page of the episodes stored for a podcast.

    Runs inside the caller's transaction. A limit of 0 means "no limit" for
    the station podcast only; imported podcasts always get a bounded page.

    Raises:
        ValueError: ``sort_column`` is not a sortable column.
    """
    order_by = _order_clause(sort_column, sort_dir)

    stmt = (
        select(PodcastEpisode)
        .where(PodcastEpisode.podcast_id == podcast_id)  # type: ignore[arg-type]
        .order_by(order_by, PodcastEpisode.id)  # type: ignore[arg-type]
        .offset(offset)
    )
    if station.is_station_podcast(podcast_id):
        if limit > 0:
            stmt = stmt.limit(limit)
    else:
        stmt = stmt.limit(limit if limit > 0 else DEFAULT_EPISODE_LIMIT)

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_podcast_episodes(
    db: AsyncSession,
    podcast_id: int,
    station: StationContext,
    fetch_feed: FeedFetcher,
    *,
    offset: int = 0,
    limit: int = DEFAULT_EPISODE_LIMIT,
    sort_column: str = "publication_date",
    sort_dir: str = "ASC",
) -> Union[list[StationEpisodeRead], list[FeedEpisodeRead]]:
    """List episodes for the episode listing endpoint.

    The station podcast returns its stored episodes. Imported podcasts
    return their live feed merged with the stored episodes; the feed is
    fetched outside any DB transaction and the merged list is paginated.

    Raises:
        PodcastNotFoundError: Unknown podcast.
        ValueError: Invalid sort column.
        MediaFileNotFoundError: An ingested episode references a missing file.
        httpx.HTTPError: The live feed could not be fetched.
    """
    _order_clause(sort_column, sort_dir)

    async with db.begin():
        podcast = await get_podcast(db, podcast_id)
        if station.is_station_podcast(podcast_id):
            episodes = await list_episodes_by_podcast(
                db,
                podcast_id,
                station,
                offset=offset,
                limit=limit,
                sort_column=sort_column,
                sort_dir=sort_dir,
            )
            files = await _load_sanitized_files(
                db, [e.file_id for e in episodes if e.file_id is not None]
            )
            return [
                to_station_episode_read(e, files.get(e.file_id))  # type: ignore[arg-type]
                for e in episodes
            ]
        feed_url = podcast.url

    if not feed_url:
        logger.warning(f"Imported podcast {podcast_id} has no feed URL")
        return []

    feed_items = await fetch_feed(feed_url)
    guids = [item.guid for item in feed_items if item.guid]

    async with db.begin():
        stored = await _get_episodes_by_guids(db, podcast_id, guids)
        merged = await merge_feed_with_registry(
            podcast_id,
            stored,
            feed_items,
            partial(get_sanitized_file_by_id, db),
        )

    page_size = limit if limit > 0 else DEFAULT_EPISODE_LIMIT
    return merged[offset : offset + page_size]


def to_station_episode_read(
    episode: PodcastEpisode,
    file: Optional[MediaFileRead] = None,
) -> StationEpisodeRead:
    """Serialize a stored episode without its internal bookkeeping fields."""
    return StationEpisodeRead(
        id=episode.id or 0,
        podcast_id=episode.podcast_id,
        file_id=episode.file_id,
        download_url=episode.download_url,
        episode_guid=episode.episode_guid,
        publication_date=episode.publication_date,
        episode_title=episode.episode_title,
        episode_description=episode.episode_description,
        file=file,
    )


def _order_clause(sort_column: str, sort_dir: str) -> Any:
    column = SORT_COLUMNS.get(sort_column)
    if column is None:
        raise ValueError("invalid_sort_column")
    return column.desc() if sort_dir == "DESC" else column.asc()  # type: ignore[union-attr]


async def _get_episodes_by_guids(
    db: AsyncSession,
    podcast_id: int,
    guids: Sequence[str],
) -> list[PodcastEpisode]:
    """Fetch the podcast's stored episodes whose guid is in ``guids``."""
    if not guids:
        return []

    stmt = select(PodcastEpisode).where(
        PodcastEpisode.podcast_id == podcast_id,  # type: ignore[arg-type]
        PodcastEpisode.episode_guid.in_(guids),  # type: ignore[attr-defined]
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _load_sanitized_files(
    db: AsyncSession,
    file_ids: Sequence[int],
) -> dict[int, MediaFileRead]:
    """Batch-load sanitized file metadata; missing files are simply absent."""
    if not file_ids:
        return {}

    result = await db.execute(
        select(MediaFile).where(MediaFile.id.in_(set(file_ids)))  # type: ignore[union-attr]
    )
    return {f.id: sanitize_media_file(f) for f in result.scalars().all()}  # type: ignore[misc]
