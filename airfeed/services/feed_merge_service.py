"""Merge a live podcast feed with the episodes stored for it.

Each feed item carrying an enclosure is reported with its ingestion status:
not stored yet, stored as a placeholder (download pending or failed and not
yet cleaned up), or stored with a file (ingested).
"""

from __future__ import annotations

import html
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Optional

from airfeed.models.podcast_episodes import FeedEpisodeRead, IngestStatus, MediaFileRead
from airfeed.schemas.podcast_episodes import PodcastEpisode
from airfeed.services.podcast_feed_service import FeedItem

FileLookup = Callable[[int], Awaitable[MediaFileRead]]


def derive_ingest_status(
    guid: str,
    episode_files: Mapping[str, Optional[int]],
) -> IngestStatus:
    """Derive the ingestion status of a feed item from the guid -> file_id map."""
    if guid not in episode_files:
        return IngestStatus.NOT_INGESTED
    if episode_files[guid] is None:
        return IngestStatus.PENDING
    return IngestStatus.INGESTED


def build_author_string(item: FeedItem) -> Optional[str]:
    """Prefer the author's e-mail (the RSS ``author`` convention), then the name."""
    return item.author_email or item.author_name or None


async def merge_feed_with_registry(
    podcast_id: int,
    stored_episodes: Iterable[PodcastEpisode],
    feed_items: Iterable[FeedItem],
    lookup_file: FileLookup,
) -> list[FeedEpisodeRead]:
    """Join live feed items with stored episodes by guid.

    Items without an enclosure URL are not media episodes and are dropped.
    Output keeps feed order.

    Args:
        podcast_id: Podcast the feed belongs to
        stored_episodes: Episodes stored for the podcast
        feed_items: Items of the live feed, in feed order
        lookup_file: Returns sanitized metadata for a file id

    Returns:
        One merged record per media item of the feed

    Raises:
        MediaFileNotFoundError: An ingested episode references a missing
            file record (propagated from ``lookup_file``).
    """
    episode_files: dict[str, Optional[int]] = {
        episode.episode_guid: episode.file_id for episode in stored_episodes
    }

    merged: list[FeedEpisodeRead] = []
    for item in feed_items:
        if not item.enclosure_url:
            continue

        status = derive_ingest_status(item.guid, episode_files)
        file: Optional[MediaFileRead] = None
        file_id = episode_files.get(item.guid)
        if status is IngestStatus.INGESTED and file_id is not None:
            file = await lookup_file(file_id)

        merged.append(
            FeedEpisodeRead(
                podcast_id=podcast_id,
                guid=item.guid,
                ingested=status,
                title=item.title,
                author=build_author_string(item),
                description=html.escape(item.description) if item.description else None,
                pub_date=item.pub_date,
                link=item.link,
                enclosure_url=item.enclosure_url,
                file=file,
            )
        )

    return merged
