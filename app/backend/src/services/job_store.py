"""Durable job persistence and state transitions.

Every mutation here commits its own transaction. :func:`claim_next_pending`
is the only place the pipeline relies on database atomicity: the Pending to
Running transition is a conditional ``UPDATE`` that succeeds for exactly one
caller.
"""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from app.backend.src.models import Job, JobStatus, Upload
from app.backend.src.models.base import utcnow
from app.backend.src.models.job import ERROR_MESSAGE_MAX_LENGTH

LOGGER = structlog.get_logger(__name__)


def create_job(session: Session, upload_id: str, *, now: datetime | None = None) -> Job:
    """Add a Pending job for ``upload_id``; the caller owns the transaction."""

    job = Job(
        upload_id=upload_id,
        status=JobStatus.PENDING.value,
        created_at=now or utcnow(),
    )
    session.add(job)
    return job


def _next_pending_id(session: Session, skip: set[str]) -> str | None:
    query = (
        select(Job.id)
        .where(Job.status == JobStatus.PENDING.value)
        .order_by(Job.created_at.asc(), Job.id.asc())
        .limit(1)
    )
    if skip:
        query = query.where(Job.id.not_in(skip))
    return session.execute(query).scalar_one_or_none()


def claim_next_pending(session: Session, *, now: datetime | None = None) -> Job | None:
    """Atomically move the oldest Pending job to Running and return it.

    Returns ``None`` when no Pending job is left. Candidates lost to a
    concurrent claimer are skipped and the next oldest one is tried.
    """

    lost: set[str] = set()
    while True:
        candidate_id = _next_pending_id(session, lost)
        session.rollback()
        if candidate_id is None:
            return None

        result = session.execute(
            update(Job)
            .where(Job.id == candidate_id, Job.status == JobStatus.PENDING.value)
            .values(status=JobStatus.RUNNING.value, started_at=now or utcnow())
            .execution_options(synchronize_session=False)
        )
        session.commit()

        if result.rowcount == 1:
            job = session.get(Job, candidate_id, populate_existing=True)
            LOGGER.info("job_claimed", job_id=candidate_id)
            return job

        LOGGER.info("job_claim_lost", job_id=candidate_id)
        lost.add(candidate_id)


def _finish(
    session: Session,
    job_id: str,
    status: JobStatus,
    *,
    error_message: str | None,
    now: datetime | None,
) -> bool:
    result = session.execute(
        update(Job)
        .where(Job.id == job_id, Job.status == JobStatus.RUNNING.value)
        .values(
            status=status.value,
            completed_at=now or utcnow(),
            error_message=error_message,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def mark_completed(
    session: Session,
    job_id: str,
    *,
    now: datetime | None = None,
    commit: bool = True,
) -> bool:
    """Move a Running job to Completed; a no-op for any other status.

    With ``commit=False`` the transition joins the caller's transaction so it
    becomes visible together with the job's artifact rows.
    """

    transitioned = _finish(
        session, job_id, JobStatus.COMPLETED, error_message=None, now=now
    )
    if commit:
        session.commit()
    if not transitioned:
        LOGGER.warning("job_complete_ignored", job_id=job_id)
    return transitioned


def mark_failed(
    session: Session,
    job_id: str,
    message: str,
    *,
    now: datetime | None = None,
) -> bool:
    """Move a Running job to Failed with ``message``; a no-op for any other status."""

    truncated = (message or "Unknown error")[:ERROR_MESSAGE_MAX_LENGTH]
    transitioned = _finish(
        session, job_id, JobStatus.FAILED, error_message=truncated, now=now
    )
    session.commit()
    if not transitioned:
        LOGGER.warning("job_fail_ignored", job_id=job_id)
    return transitioned


def get_job(session: Session, job_id: str) -> Job | None:
    """Return a job with its artifacts loaded, or ``None``."""

    return session.execute(
        select(Job)
        .options(selectinload(Job.output_artifacts))
        .where(Job.id == job_id)
    ).scalar_one_or_none()


def get_job_for_processing(session: Session, job_id: str) -> Job | None:
    """Return a job with its upload, filing period and client loaded."""

    return session.execute(
        select(Job)
        .options(
            selectinload(Job.upload).selectinload(Upload.filing_period),
            selectinload(Job.upload).selectinload(Upload.client),
        )
        .where(Job.id == job_id)
    ).scalar_one_or_none()


def list_jobs_for_upload(session: Session, upload_id: str) -> list[Job]:
    """Return the jobs of one upload, newest first."""

    return list(
        session.execute(
            select(Job)
            .options(selectinload(Job.output_artifacts))
            .where(Job.upload_id == upload_id)
            .order_by(Job.created_at.desc())
        ).scalars()
    )


def list_recent_jobs(session: Session, *, limit: int = 20) -> list[Job]:
    """Return the most recently created jobs across all uploads."""

    return list(
        session.execute(
            select(Job).order_by(Job.created_at.desc()).limit(limit)
        ).scalars()
    )


__all__ = [
    "claim_next_pending",
    "create_job",
    "get_job",
    "get_job_for_processing",
    "list_jobs_for_upload",
    "list_recent_jobs",
    "mark_completed",
    "mark_failed",
]
