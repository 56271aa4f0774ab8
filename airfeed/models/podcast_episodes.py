"""Pydantic request/response models for the podcast episode feature."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import field_validator
from sqlmodel import Field, SQLModel


class IngestStatus(str, Enum):
    """Ingestion status of a live feed item relative to the registry."""

    NOT_INGESTED = "not_ingested"
    PENDING = "pending"
    INGESTED = "ingested"


class MediaFileRead(SQLModel):
    """Sanitized media file metadata (storage internals removed)."""

    id: int
    name: str
    mime: Optional[str] = None
    track_title: Optional[str] = None
    artist_name: Optional[str] = None
    album_title: Optional[str] = None
    length: Optional[str] = None
    filesize: int = 0
    bit_rate: Optional[int] = None
    sample_rate: Optional[int] = None
    import_status: int = 0


class StationEpisodeRead(SQLModel):
    """Stored episode as returned for the station podcast and single lookups."""

    id: int
    podcast_id: int
    file_id: Optional[int] = None
    download_url: str
    episode_guid: str
    publication_date: datetime
    episode_title: Optional[str] = None
    episode_description: Optional[str] = None
    file: Optional[MediaFileRead] = None


class FeedEpisodeRead(SQLModel):
    """Live feed item merged with its registry status (imported podcasts)."""

    podcast_id: int
    guid: str
    ingested: IngestStatus
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    pub_date: Optional[datetime] = None
    link: Optional[str] = None
    enclosure_url: str
    file: Optional[MediaFileRead] = None


class EpisodeImportItem(SQLModel):
    """A feed episode submitted for import.

    ``enclosure`` accepts either the enclosure URL itself or a mapping as
    produced by feed parsers (``link``, ``url`` or ``href`` key); it is
    normalized to the URL. A naive ``pub_date`` is taken as UTC.
    """

    guid: str = Field(min_length=1)
    pub_date: datetime
    enclosure: str
    title: Optional[str] = None
    description: Optional[str] = None

    @field_validator("enclosure", mode="before")
    @classmethod
    def _resolve_enclosure_url(cls, value: Union[str, dict[str, Any], None]) -> str:
        if isinstance(value, dict):
            value = value.get("link") or value.get("url") or value.get("href")
        if not isinstance(value, str) or not value.strip():
            raise ValueError("enclosure has no URL")
        return value.strip()

    @field_validator("pub_date")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class EpisodeDownloadResult(SQLModel):
    """Per-item result reported by the download worker."""

    episodeid: int
    fileid: Optional[int] = None
    status: int = 0  # 1 on success, 0 on failure
    error: Optional[str] = None


class DownloadCompletion(SQLModel):
    """Completion notification for a download job."""

    task_id: str
    status: str  # job-level status, "SUCCESS" on success
    result: EpisodeDownloadResult


class DownloadPollResult(SQLModel):
    """Summary of a completion polling pass."""

    tasks_checked: int
    tasks_completed: int
    episodes_ingested: int
    episodes_removed: int
    errors: list[str]
