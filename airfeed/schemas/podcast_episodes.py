"""Podcast episodes table: placeholders and ingested episodes."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from airfeed.schemas.base import timestamp_field, utcnow


class PodcastEpisode(SQLModel, table=True):  # type: ignore[call-arg]
    """An episode row for either the station podcast or an imported feed.

    Imported episodes start as placeholders (``file_id`` unset) while the
    download job runs. Completion sets ``file_id`` once; failure deletes the
    row.
    """

    __tablename__ = "podcast_episodes"

    id: Optional[int] = Field(default=None, primary_key=True)
    podcast_id: int = Field(foreign_key="podcasts.id", index=True)
    file_id: Optional[int] = Field(
        default=None, foreign_key="media_files.id", index=True
    )
    download_url: str
    episode_guid: str = Field(unique=True, index=True)  # RSS guid for deduplication
    publication_date: datetime = timestamp_field(index=True)
    episode_title: Optional[str] = Field(default=None)
    episode_description: Optional[str] = Field(default=None)

    created_at: datetime = timestamp_field(default_factory=utcnow)
    updated_at: datetime = timestamp_field(default_factory=utcnow)
