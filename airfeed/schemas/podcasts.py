"""Podcast table: the station's own feed plus imported RSS feeds."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from airfeed.schemas.base import timestamp_field, utcnow


class Podcast(SQLModel, table=True):  # type: ignore[call-arg]
    """A podcast known to the station.

    The row whose id matches the configured station podcast id is the
    station's outgoing feed; its episodes are published local files. Every
    other row is an imported feed identified by its RSS URL.
    """

    __tablename__ = "podcasts"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    url: Optional[str] = Field(default=None, unique=True)  # RSS feed URL
    created_at: datetime = timestamp_field(default_factory=utcnow)
