"""Download completion reconciliation.

Each imported episode moves through a small state machine driven by
completion events from the download workers:

    PLACEHOLDER --(job SUCCESS, item status 1, file exists)--> INGESTED (file_id set)
    PLACEHOLDER --(anything else)----------------------------> REMOVED  (row deleted)

Events arrive in any order and may refer to a placeholder that was already
deleted by hand, so every path here is a logged no-op rather than an error.
Failed downloads are not retried.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from airfeed.models.podcast_episodes import (
    DownloadCompletion,
    DownloadPollResult,
    EpisodeDownloadResult,
)
from airfeed.schemas.base import utcnow
from airfeed.schemas.download_tasks import DownloadTask, DownloadTaskStatus
from airfeed.schemas.media_files import MediaFile
from airfeed.schemas.podcast_episodes import PodcastEpisode
from airfeed.services.download_dispatcher import JobDispatcher, JobResult

logger = logging.getLogger(__name__)

CELERY_SUCCESS_STATUS = "SUCCESS"
ITEM_SUCCESS_STATUS = 1


class ReconcileOutcome(str, Enum):
    """What a completion event did to its episode."""

    INGESTED = "ingested"
    REMOVED = "removed"
    MISSING = "missing"
    ALREADY_INGESTED = "already_ingested"


def is_successful_completion(completion: DownloadCompletion) -> bool:
    """A download succeeded only if the job and the item both report success.

    The job itself can succeed while the download inside it failed.
    """
    return (
        completion.status == CELERY_SUCCESS_STATUS
        and completion.result.status == ITEM_SUCCESS_STATUS
        and completion.result.fileid is not None
    )


async def reconcile_download(
    db: AsyncSession,
    completion: DownloadCompletion,
) -> ReconcileOutcome:
    """Apply a download completion event to its episode.

    The episode row is locked for the duration of the check-and-act so a
    concurrent manual delete cannot interleave with it.

    Args:
        db: Async database session
        completion: Completion event from the job system

    Returns:
        The transition that was applied
    """
    task_id = completion.task_id
    item = completion.result
    succeeded = is_successful_completion(completion)

    async with db.begin():
        error = item.error
        if succeeded and await db.get(MediaFile, item.fileid) is None:
            succeeded = False
            error = f"reported file {item.fileid} does not exist"
        await _mark_task_complete(db, completion, succeeded, error)

        result = await db.execute(
            select(PodcastEpisode)
            .where(PodcastEpisode.id == item.episodeid)  # type: ignore[arg-type]
            .with_for_update()
        )
        episode = result.scalar_one_or_none()

        if episode is None:
            logger.warning(
                f"Download task {task_id} episode {item.episodeid} unsuccessful: "
                "episode placeholder removed"
            )
            return ReconcileOutcome.MISSING

        if episode.file_id is not None:
            logger.warning(
                f"Download task {task_id} episode {item.episodeid} ignored: "
                f"episode already ingested as file {episode.file_id}"
            )
            return ReconcileOutcome.ALREADY_INGESTED

        if succeeded:
            episode.file_id = item.fileid
            episode.updated_at = utcnow()
            db.add(episode)
            logger.info(
                f"Download task {task_id} episode {item.episodeid} ingested "
                f"as file {item.fileid}"
            )
            return ReconcileOutcome.INGESTED

        logger.warning(
            f"Download task {task_id} episode {item.episodeid} unsuccessful "
            f"with status {completion.status} and message {error}"
        )
        await db.delete(episode)
        return ReconcileOutcome.REMOVED


async def poll_pending_downloads(
    db: AsyncSession,
    dispatcher: JobDispatcher,
) -> DownloadPollResult:
    """Pull results for every PENDING download task and reconcile them.

    Tasks still running are left PENDING. A failure reconciling one task is
    recorded and does not stop the pass.
    """
    async with db.begin():
        result = await db.execute(
            select(DownloadTask)
            .where(DownloadTask.status == DownloadTaskStatus.PENDING)  # type: ignore[arg-type]
            .order_by(DownloadTask.dispatched_at)  # type: ignore[arg-type]
        )
        pending = [(t.task_id, t.episode_id) for t in result.scalars().all()]

    logger.info(f"Polling {len(pending)} pending download task(s)")

    completed = 0
    ingested = 0
    removed = 0
    errors: list[str] = []

    for task_id, episode_id in pending:
        try:
            job = await asyncio.to_thread(dispatcher.poll, task_id)
            if job is None:
                continue

            outcome = await reconcile_download(
                db, completion_from_job(task_id, episode_id, job)
            )
            completed += 1
            if outcome is ReconcileOutcome.INGESTED:
                ingested += 1
            elif outcome is ReconcileOutcome.REMOVED:
                removed += 1
        except Exception as e:
            error_msg = f"Failed to reconcile download task {task_id}: {e}"
            logger.error(error_msg)
            errors.append(error_msg)

    return DownloadPollResult(
        tasks_checked=len(pending),
        tasks_completed=completed,
        episodes_ingested=ingested,
        episodes_removed=removed,
        errors=errors,
    )


def completion_from_job(task_id: str, episode_id: int, job: JobResult) -> DownloadCompletion:
    """Build a completion event from a polled job result.

    Missing or malformed worker payloads become failed item results for the
    tracked episode.
    """
    item: Optional[EpisodeDownloadResult] = None
    error = job.error
    if job.payload is not None:
        try:
            item = EpisodeDownloadResult.model_validate(job.payload)
        except ValidationError as exc:
            error = f"Malformed task result: {exc}"

    if item is None:
        item = EpisodeDownloadResult(episodeid=episode_id, status=0, error=error)

    return DownloadCompletion(task_id=task_id, status=job.status, result=item)


async def _mark_task_complete(
    db: AsyncSession,
    completion: DownloadCompletion,
    succeeded: bool,
    error: Optional[str],
) -> None:
    """Record the completion on the tracking row, if the task is tracked."""
    result = await db.execute(
        select(DownloadTask).where(DownloadTask.task_id == completion.task_id)  # type: ignore[arg-type]
    )
    task = result.scalar_one_or_none()
    if task is None:
        logger.warning(f"Completion for untracked download task {completion.task_id}")
        return

    task.status = DownloadTaskStatus.SUCCESS if succeeded else DownloadTaskStatus.FAILURE
    task.error = None if succeeded else error
    task.completed_at = utcnow()
    db.add(task)
