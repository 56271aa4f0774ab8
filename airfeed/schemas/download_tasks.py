"""Download task tracking table."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from airfeed.schemas.base import timestamp_field, utcnow


class DownloadTaskStatus(str, Enum):
    """Lifecycle of a submitted download job."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class DownloadTask(SQLModel, table=True):  # type: ignore[call-arg]
    """Correlates a job handle from the job system with an episode.

    ``episode_id`` carries no foreign key: the episode may be
    deleted while its download is still in flight.
    """

    __tablename__ = "download_tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: str = Field(unique=True, index=True)
    task_name: str
    episode_id: int = Field(index=True)
    download_url: str
    status: DownloadTaskStatus = Field(default=DownloadTaskStatus.PENDING, index=True)
    error: Optional[str] = Field(default=None)

    dispatched_at: datetime = timestamp_field(default_factory=utcnow)
    completed_at: Optional[datetime] = timestamp_field(default=None)
