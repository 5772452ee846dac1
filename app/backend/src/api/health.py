"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.storage import StorageGateway, get_storage_gateway
from ..db import get_session_dependency
from ..models import Job, JobStatus

router = APIRouter(tags=["health"])


@router.get("/health/live")
def liveness() -> dict[str, str]:
    """Return a liveness indicator."""

    return {"status": "live"}


@router.get("/health/ready")
def readiness(
    session: Session = Depends(get_session_dependency),
    storage: StorageGateway = Depends(get_storage_gateway),
) -> dict[str, str | int]:
    """Check the database and report the storage provider and queue depth."""

    pending = session.execute(
        select(func.count(Job.id)).where(Job.status == JobStatus.PENDING.value)
    ).scalar_one()
    return {
        "status": "ready",
        "storage_provider": storage.provider_name,
        "pending_jobs": pending,
    }


@router.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
