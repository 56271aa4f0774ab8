"""Factories and sample rows shared by the integration tests."""

from datetime import UTC, datetime
from typing import Optional

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from airfeed.models.podcast_episodes import EpisodeImportItem
from airfeed.schemas.media_files import MediaFile
from airfeed.schemas.podcast_episodes import PodcastEpisode
from airfeed.schemas.podcasts import Podcast
from tests.conftest import STATION_PODCAST_ID

IMPORTED_FEED_URL = "https://feeds.example.com/weekly.xml"


def make_podcast(
    podcast_id: Optional[int] = None,
    *,
    title: str = "Weekly Show",
    url: Optional[str] = IMPORTED_FEED_URL,
) -> Podcast:
    return Podcast(id=podcast_id, title=title, url=url)


def make_media_file(file_id: Optional[int] = None, *, name: str = "episode.mp3") -> MediaFile:
    return MediaFile(
        id=file_id,
        name=name,
        mime="audio/mpeg",
        track_title=f"Track {name}",
        artist_name="Host",
        length="00:42:00",
        filesize=1024,
        filepath=f"/srv/media/{name}",
    )


def make_episode(
    podcast_id: int,
    guid: str,
    *,
    file_id: Optional[int] = None,
    publication_date: Optional[datetime] = None,
) -> PodcastEpisode:
    return PodcastEpisode(
        podcast_id=podcast_id,
        download_url=f"https://cdn.example.com/{guid}.mp3",
        episode_guid=guid,
        publication_date=publication_date or datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC),
        file_id=file_id,
    )


def make_import_item(guid: str, *, url: Optional[str] = None) -> EpisodeImportItem:
    return EpisodeImportItem(
        guid=guid,
        pub_date=datetime(2026, 2, 1, 8, 30, 0, tzinfo=UTC),
        enclosure={"link": url or f"https://cdn.example.com/{guid}.mp3"},
        title=f"Episode {guid}",
    )


@pytest_asyncio.fixture
async def station_podcast(db_session: AsyncSession) -> Podcast:
    """Create the station's own podcast row."""
    podcast = make_podcast(title="Station Podcast", url=None)
    db_session.add(podcast)
    await db_session.commit()
    assert podcast.id == STATION_PODCAST_ID
    return podcast


@pytest_asyncio.fixture
async def imported_podcast(db_session: AsyncSession, station_podcast: Podcast) -> Podcast:
    """Create an imported podcast alongside the station podcast."""
    podcast = make_podcast()
    db_session.add(podcast)
    await db_session.commit()
    return podcast
