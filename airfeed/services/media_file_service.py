"""Read access to the station's media file records."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from airfeed.models.podcast_episodes import MediaFileRead
from airfeed.schemas.media_files import MediaFile


class MediaFileNotFoundError(Exception):
    """Raised when a referenced media file record does not exist."""

    def __init__(self, file_id: int) -> None:
        super().__init__(f"Media file {file_id} not found")
        self.file_id = file_id


def sanitize_media_file(media_file: MediaFile) -> MediaFileRead:
    """Strip storage internals (path, timestamps, flags) from a file record."""
    return MediaFileRead.model_validate(media_file, from_attributes=True)


async def get_sanitized_file_by_id(db: AsyncSession, file_id: int) -> MediaFileRead:
    """Look up a media file and return its public metadata.

    Raises:
        MediaFileNotFoundError: The file record is missing.
    """
    media_file = await db.get(MediaFile, file_id)
    if media_file is None:
        raise MediaFileNotFoundError(file_id)
    return sanitize_media_file(media_file)
