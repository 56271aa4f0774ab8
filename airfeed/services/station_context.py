"""Station-wide values passed explicitly into the episode services."""

from __future__ import annotations

import hmac
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request

from airfeed.config import settings

API_KEY_HEADER = "X-API-Key"


@dataclass(frozen=True, slots=True)
class StationContext:
    """Station base URL, API key and the id of the station's own podcast."""

    station_url: str
    api_key: str
    station_podcast_id: int

    def absolute_url(self, path: str) -> str:
        """Join a path onto the station base URL with exactly one slash."""
        return f"{self.station_url.rstrip('/')}/{path.lstrip('/')}"

    def is_station_podcast(self, podcast_id: int) -> bool:
        return podcast_id == self.station_podcast_id


def get_station_context() -> StationContext:
    """FastAPI dependency building the station context from settings."""
    return StationContext(
        station_url=settings.station_url,
        api_key=settings.api_key,
        station_podcast_id=settings.station_podcast_id,
    )


async def require_api_key(
    request: Request,
    station: StationContext = Depends(get_station_context),
) -> None:
    """FastAPI dependency enforcing the station API key (raises 401).

    The key is read from the ``X-API-Key`` header, falling back to the
    ``api_key`` query parameter used by the download worker's callbacks.
    """
    provided = request.headers.get(API_KEY_HEADER) or request.query_params.get(
        "api_key"
    )
    if not provided or not hmac.compare_digest(
        provided.encode(), station.api_key.encode()
    ):
        raise HTTPException(status_code=401, detail="Not authenticated")
