"""Endpoints to track parse job status."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.backend.src.core.security import get_current_user
from app.backend.src.db import get_session_dependency
from app.backend.src.models import User
from app.backend.src.schemas.job import JobRead
from app.backend.src.services.ingestion import get_owned_job

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/{job_id}", response_model=JobRead)
def job_status(
    job_id: str,
    session: Session = Depends(get_session_dependency),
    current_user: User = Depends(get_current_user),
) -> JobRead:
    """Return the status of a job if its upload belongs to the current user."""

    job = get_owned_job(session, job_id, current_user.id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobRead.model_validate(job)
