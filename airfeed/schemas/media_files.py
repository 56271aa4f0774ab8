"""Media files table owned by the station's file storage."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from airfeed.schemas.base import timestamp_field


class MediaFile(SQLModel, table=True):  # type: ignore[call-arg]
    """A stored audio file.

    Rows are created by the media upload pipeline (including the download
    worker's callback); this service only reads them.
    """

    __tablename__ = "media_files"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    mime: Optional[str] = Field(default=None)
    track_title: Optional[str] = Field(default=None)
    artist_name: Optional[str] = Field(default=None)
    album_title: Optional[str] = Field(default=None)
    length: Optional[str] = Field(default=None)  # "HH:MM:SS.ffffff"
    filesize: int = Field(default=0)
    bit_rate: Optional[int] = Field(default=None)
    sample_rate: Optional[int] = Field(default=None)
    import_status: int = Field(default=0)

    # Storage internals, never exposed through the API
    filepath: Optional[str] = Field(default=None)
    file_exists: bool = Field(default=True)
    hidden: bool = Field(default=False)
    mtime: Optional[datetime] = timestamp_field(default=None)
    utime: Optional[datetime] = timestamp_field(default=None)
