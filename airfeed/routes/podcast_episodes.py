"""Podcast episode API routes.

Provides endpoints for:
- Listing episodes of the station podcast or an imported feed
- Importing feed episodes in bulk or one at a time (placeholder + download job)
- Reading and deleting single episodes
- Publishing/unpublishing files on the station podcast
- Receiving download completion callbacks from the workers
"""

import logging
from typing import Union

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from airfeed.models.podcast_episodes import (
    DownloadCompletion,
    EpisodeImportItem,
    FeedEpisodeRead,
    StationEpisodeRead,
)
from airfeed.services.download_dispatcher import JobDispatcher, get_job_dispatcher
from airfeed.services.download_reconciler import ReconcileOutcome, reconcile_download
from airfeed.services.media_file_service import (
    MediaFileNotFoundError,
    get_sanitized_file_by_id,
)
from airfeed.services.podcast_episode_service import (
    DEFAULT_EPISODE_LIMIT,
    DuplicatePodcastEpisodeError,
    PodcastEpisodeNotFoundError,
    add_placeholders,
    delete_episode_by_id,
    download_episodes,
    get_episode_by_id,
    import_episode,
    list_podcast_episodes,
    to_station_episode_read,
)
from airfeed.services.podcast_feed_service import FeedFetcher, fetch_podcast_feed
from airfeed.services.podcast_service import PodcastNotFoundError
from airfeed.services.publish_service import publish, unpublish
from airfeed.services.station_context import (
    StationContext,
    get_station_context,
    require_api_key,
)
from airfeed.utils.db_async import get_session

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["podcast-episodes"],
    dependencies=[Depends(require_api_key)],
)


def get_feed_fetcher() -> FeedFetcher:
    """FastAPI dependency returning the live feed fetcher."""
    return fetch_podcast_feed


@router.get(
    "/podcasts/{podcast_id}/episodes",
    response_model=Union[list[StationEpisodeRead], list[FeedEpisodeRead]],
)
async def list_episodes(
    podcast_id: int,
    offset: int = Query(default=0, ge=0, description="Number of items to skip"),
    limit: int = Query(
        default=DEFAULT_EPISODE_LIMIT,
        ge=0,
        description="Items per page; 0 lists every station podcast episode",
    ),
    sort_column: str = Query(default="publication_date"),
    sort_dir: str = Query(
        default="ASC", description="DESC for descending, anything else ascending"
    ),
    db: AsyncSession = Depends(get_session),
    station: StationContext = Depends(get_station_context),
    fetch_feed: FeedFetcher = Depends(get_feed_fetcher),
) -> Union[list[StationEpisodeRead], list[FeedEpisodeRead]]:
    """List a podcast's episodes.

    The station podcast returns its stored episodes. Imported podcasts return
    their live feed items with an ingestion status per item.
    """
    try:
        return await list_podcast_episodes(
            db,
            podcast_id,
            station,
            fetch_feed,
            offset=offset,
            limit=limit,
            sort_column=sort_column,
            sort_dir=sort_dir,
        )
    except PodcastNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Podcast not found") from exc
    except ValueError as exc:
        if str(exc) == "invalid_sort_column":
            raise HTTPException(status_code=400, detail="Invalid sort column") from exc
        raise
    except httpx.HTTPError as exc:
        raise HTTPException(
            status_code=502, detail=f"Failed to fetch podcast feed: {exc}"
        ) from exc
    except MediaFileNotFoundError as exc:
        logger.error(f"Podcast {podcast_id} has an episode without its file: {exc}")
        raise HTTPException(
            status_code=500, detail="Episode references a missing media file"
        ) from exc


@router.post(
    "/podcasts/{podcast_id}/episodes",
    response_model=list[StationEpisodeRead],
    status_code=201,
)
async def import_episodes(
    podcast_id: int,
    episodes: list[EpisodeImportItem],
    db: AsyncSession = Depends(get_session),
    station: StationContext = Depends(get_station_context),
    dispatcher: JobDispatcher = Depends(get_job_dispatcher),
) -> list[StationEpisodeRead]:
    """Import feed episodes.

    Stores a placeholder per new episode (duplicates are skipped) and queues
    a download for each stored placeholder.
    """
    try:
        stored = await add_placeholders(db, podcast_id, episodes)
    except PodcastNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Podcast not found") from exc

    await download_episodes(db, stored, dispatcher, station)
    return [to_station_episode_read(e) for e in stored]


@router.post(
    "/podcasts/{podcast_id}/episodes/import",
    response_model=StationEpisodeRead,
    status_code=201,
)
async def import_single_episode(
    podcast_id: int,
    episode: EpisodeImportItem,
    db: AsyncSession = Depends(get_session),
    station: StationContext = Depends(get_station_context),
    dispatcher: JobDispatcher = Depends(get_job_dispatcher),
) -> StationEpisodeRead:
    """Import one feed episode; an already stored guid is a conflict."""
    try:
        placeholder = await import_episode(db, podcast_id, episode, dispatcher, station)
    except PodcastNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Podcast not found") from exc
    except DuplicatePodcastEpisodeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return to_station_episode_read(placeholder)


@router.get("/podcast-episodes/{episode_id}", response_model=StationEpisodeRead)
async def get_episode(
    episode_id: int,
    db: AsyncSession = Depends(get_session),
) -> StationEpisodeRead:
    """Return a stored episode with its file metadata when ingested."""
    try:
        episode = await get_episode_by_id(db, episode_id)
    except PodcastEpisodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Episode not found") from exc

    file = None
    if episode.file_id is not None:
        async with db.begin():
            try:
                file = await get_sanitized_file_by_id(db, episode.file_id)
            except MediaFileNotFoundError as exc:
                raise HTTPException(
                    status_code=404, detail="Episode file not found"
                ) from exc
    return to_station_episode_read(episode, file)


@router.delete("/podcast-episodes/{episode_id}", status_code=204)
async def delete_episode(
    episode_id: int,
    db: AsyncSession = Depends(get_session),
) -> Response:
    """Delete a stored episode (an in-flight download is reconciled as missing)."""
    try:
        await delete_episode_by_id(db, episode_id)
    except PodcastEpisodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Episode not found") from exc
    return Response(status_code=204)


@router.post(
    "/station/episodes/{file_id}",
    response_model=StationEpisodeRead,
)
async def publish_file(
    file_id: int,
    db: AsyncSession = Depends(get_session),
    station: StationContext = Depends(get_station_context),
) -> StationEpisodeRead:
    """Publish a file on the station podcast (idempotent)."""
    try:
        episode = await publish(db, file_id, station)
    except MediaFileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="File not found") from exc
    return to_station_episode_read(episode)


@router.delete("/station/episodes/{file_id}", status_code=204)
async def unpublish_file(
    file_id: int,
    db: AsyncSession = Depends(get_session),
    station: StationContext = Depends(get_station_context),
) -> Response:
    """Remove a file from the station podcast."""
    try:
        await unpublish(db, file_id, station)
    except PodcastEpisodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail="File is not published") from exc
    return Response(status_code=204)


@router.post("/podcast-episodes/downloads/complete")
async def complete_download(
    completion: DownloadCompletion,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Receive a download completion from the job system.

    Always answers 200: missing placeholders and failed downloads are
    resolved here and logged, not reported back to the worker.
    """
    outcome: ReconcileOutcome = await reconcile_download(db, completion)
    return {"outcome": outcome.value}
