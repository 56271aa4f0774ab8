"""Download job submission.

Episode downloads run on an external Celery worker. This module builds the
job payload, submits it through a ``JobDispatcher`` and records a
``DownloadTask`` row so completions can be correlated with episodes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Protocol

from celery import Celery
from celery.result import AsyncResult
from sqlalchemy.ext.asyncio import AsyncSession

from airfeed.config import settings
from airfeed.schemas.download_tasks import DownloadTask
from airfeed.services.station_context import StationContext

logger = logging.getLogger(__name__)

MEDIA_CALLBACK_PATH = "rest/media"


@dataclass(frozen=True, slots=True)
class JobResult:
    """Outcome of a finished job as reported by the job system."""

    status: str
    payload: Optional[dict[str, Any]]
    error: Optional[str] = None


class JobDispatcher(Protocol):
    """Submits jobs to the external job system and reports their results."""

    def submit(self, task_name: str, payload: dict[str, Any]) -> str:
        """Submit a job and return its handle."""
        ...

    def poll(self, task_id: str) -> Optional[JobResult]:
        """Return the job result, or None while the job is still running."""
        ...


class CeleryJobDispatcher:
    """``JobDispatcher`` backed by a Celery client.

    Tasks are sent by name only; the implementation lives on the worker.
    """

    def __init__(self, app: Celery, exchange: str) -> None:
        self.app = app
        self.exchange = exchange

    def submit(self, task_name: str, payload: dict[str, Any]) -> str:
        result = self.app.send_task(
            task_name,
            kwargs=payload,
            exchange=self.exchange,
            routing_key=self.exchange,
        )
        return result.id

    def poll(self, task_id: str) -> Optional[JobResult]:
        result = AsyncResult(task_id, app=self.app)
        if not result.ready():
            return None

        if not result.successful():
            return JobResult(status=result.status, payload=None, error=str(result.result))

        raw = result.result
        # The worker reports its per-item result as a JSON string
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError:
                return JobResult(
                    status=result.status,
                    payload=None,
                    error=f"Unparseable task result: {raw!r}",
                )
        if not isinstance(raw, dict):
            return JobResult(
                status=result.status,
                payload=None,
                error=f"Unexpected task result type: {type(raw).__name__}",
            )
        return JobResult(status=result.status, payload=raw)


def create_celery_app() -> Celery:
    """Build the Celery client used to talk to the download workers."""
    return Celery(
        "airfeed",
        broker=settings.celery_broker_url,
        backend=settings.celery_result_backend,
    )


@lru_cache(maxsize=1)
def get_job_dispatcher() -> JobDispatcher:
    """FastAPI dependency returning the process-wide Celery dispatcher."""
    return CeleryJobDispatcher(create_celery_app(), exchange=settings.podcast_exchange)


def build_download_payload(
    episode_id: int,
    url: str,
    station: StationContext,
) -> dict[str, Any]:
    """Build the payload the download worker expects.

    The worker downloads ``url``, uploads the file to ``callback_url``
    authenticated with ``api_key``, and reports the new file id back.
    """
    return {
        "id": episode_id,
        "url": url,
        "callback_url": station.absolute_url(MEDIA_CALLBACK_PATH),
        "api_key": station.api_key,
    }


async def enqueue_download(
    db: AsyncSession,
    episode_id: int,
    url: str,
    dispatcher: JobDispatcher,
    station: StationContext,
) -> DownloadTask:
    """Submit a download job for an episode and track it.

    Submission errors propagate to the caller; the episode placeholder is
    left in place.

    Args:
        db: Async database session
        episode_id: Placeholder episode to download into
        url: Media URL to download
        dispatcher: Job system collaborator
        station: Station context providing callback URL and API key

    Returns:
        The PENDING DownloadTask row
    """
    task_name = settings.podcast_download_task
    payload = build_download_payload(episode_id, url, station)

    # Broker publishing is blocking network I/O
    task_id = await asyncio.to_thread(dispatcher.submit, task_name, payload)

    task = DownloadTask(
        task_id=task_id,
        task_name=task_name,
        episode_id=episode_id,
        download_url=url,
    )
    async with db.begin():
        db.add(task)

    logger.info(f"Queued {task_name} task {task_id} for episode {episode_id}")
    return task
