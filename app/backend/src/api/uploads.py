"""Upload ingestion and listing endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import NotFoundError, UploadValidationError
from app.backend.src.core.security import get_current_user
from app.backend.src.core.storage import StorageGateway, get_storage_gateway
from app.backend.src.db import get_session_dependency
from app.backend.src.models import User
from app.backend.src.schemas.job import JobRead
from app.backend.src.schemas.upload import UploadCreated, UploadRead
from app.backend.src.services import ingestion

LOGGER = structlog.get_logger(__name__)

router = APIRouter(tags=["uploads"])


@router.get(
    "/clients/{client_id}/periods/{filing_period_id}/uploads",
    response_model=list[UploadRead],
)
def list_uploads(
    client_id: str,
    filing_period_id: str,
    session: Session = Depends(get_session_dependency),
    current_user: User = Depends(get_current_user),
) -> list[UploadRead]:
    """Return the period's uploads with their jobs and artifacts."""

    try:
        uploads = ingestion.list_uploads(
            session,
            owner_user_id=current_user.id,
            client_id=client_id,
            filing_period_id=filing_period_id,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [UploadRead.model_validate(upload) for upload in uploads]


@router.post(
    "/clients/{client_id}/periods/{filing_period_id}/uploads",
    response_model=UploadCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_upload(
    client_id: str,
    filing_period_id: str,
    file: UploadFile = File(...),
    source_kind: str = Form(...),
    session: Session = Depends(get_session_dependency),
    current_user: User = Depends(get_current_user),
    storage: StorageGateway = Depends(get_storage_gateway),
) -> UploadCreated:
    """Store an Excel/PDF file and queue it for processing."""

    settings = get_settings()
    # One byte past the limit is enough for validation to reject the file.
    content = await file.read(settings.max_upload_bytes + 1)
    try:
        result = await run_in_threadpool(
            ingestion.ingest_upload,
            session,
            storage,
            owner_user_id=current_user.id,
            client_id=client_id,
            filing_period_id=filing_period_id,
            filename=file.filename or "",
            content=content,
            content_type=file.content_type,
            source_kind=source_kind,
            upload_container=settings.upload_container,
            max_bytes=settings.max_upload_bytes,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except UploadValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={exc.field: [exc.message]},
        ) from exc

    return UploadCreated(
        upload_id=result.upload_id, job_id=result.job_id, status=result.status
    )


@router.post(
    "/uploads/{upload_id}/jobs",
    response_model=JobRead,
    status_code=status.HTTP_201_CREATED,
)
def reprocess_upload(
    upload_id: str,
    session: Session = Depends(get_session_dependency),
    current_user: User = Depends(get_current_user),
) -> JobRead:
    """Queue another processing job for an existing upload."""

    try:
        job = ingestion.requeue_upload(
            session, owner_user_id=current_user.id, upload_id=upload_id
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobRead.model_validate(job)
