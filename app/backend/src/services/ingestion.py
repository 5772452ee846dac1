"""Upload ingestion, listing and download for the HTTP layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from typing import BinaryIO

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.backend.src.core.errors import NotFoundError, UploadValidationError
from app.backend.src.core.storage import FileStorage, build_input_path
from app.backend.src.models import Client, FilingPeriod, Job, OutputArtifact, Upload
from app.backend.src.models.base import utcnow
from app.backend.src.models.upload import FILENAME_MAX_LENGTH, SOURCE_KINDS
from app.backend.src.services import job_store
from app.backend.src.services.artifacts import get_owned_artifact
from app.backend.src.services.metrics import uploads_ingested_total

LOGGER = structlog.get_logger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 20_000_000

_EXTENSIONS_BY_KIND: dict[str, frozenset[str]] = {
    "Excel": frozenset({".xls", ".xlsx"}),
    "PDF": frozenset({".pdf"}),
}


@dataclass(frozen=True)
class IngestionResult:
    upload_id: str
    job_id: str
    status: str


def find_owned_filing_period(
    session: Session, client_id: str, filing_period_id: str, owner_user_id: str
) -> FilingPeriod | None:
    """Return the period when both it and its client belong to the user."""

    return session.execute(
        select(FilingPeriod)
        .join(Client, Client.id == FilingPeriod.client_id)
        .where(
            FilingPeriod.id == filing_period_id,
            FilingPeriod.client_id == client_id,
            Client.owner_user_id == owner_user_id,
        )
    ).scalar_one_or_none()


def validate_upload(
    filename: str,
    source_kind: str,
    size_bytes: int,
    *,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> None:
    """Raise :class:`UploadValidationError` for files the pipeline should not accept."""

    if source_kind not in SOURCE_KINDS:
        raise UploadValidationError("source_kind", "Source kind must be Excel or PDF.")
    if size_bytes <= 0:
        raise UploadValidationError("file", "The file is empty.")
    if size_bytes > max_bytes:
        raise UploadValidationError(
            "file", f"The file exceeds the maximum size of {max_bytes} bytes."
        )
    if len(filename or "") > FILENAME_MAX_LENGTH:
        raise UploadValidationError(
            "file", f"The file name exceeds {FILENAME_MAX_LENGTH} characters."
        )
    extension = PurePosixPath((filename or "").replace("\\", "/")).suffix.lower()
    if extension not in _EXTENSIONS_BY_KIND[source_kind]:
        raise UploadValidationError(
            "file", "The file type does not match the selected kind (Excel/PDF)."
        )


def ingest_upload(
    session: Session,
    storage: FileStorage,
    *,
    owner_user_id: str,
    client_id: str,
    filing_period_id: str,
    filename: str,
    content: bytes,
    content_type: str | None,
    source_kind: str,
    upload_container: str = "uploads",
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    now: datetime | None = None,
) -> IngestionResult:
    """Store the file, then create its Upload and Pending Job in one commit."""

    period = find_owned_filing_period(session, client_id, filing_period_id, owner_user_id)
    if period is None:
        raise NotFoundError("Filing period not found")

    validate_upload(filename, source_kind, len(content), max_bytes=max_bytes)

    resolved_content_type = content_type or "application/octet-stream"
    path = build_input_path(client_id, period.year, period.month, filename)
    stored = storage.save(upload_container, path, content, resolved_content_type)

    created_at = now or utcnow()
    upload = Upload(
        client_id=client_id,
        filing_period_id=filing_period_id,
        uploaded_by_user_id=owner_user_id,
        original_filename=filename,
        content_type=resolved_content_type,
        source_kind=source_kind,
        size_bytes=len(content),
        storage_provider=stored.provider,
        storage_container=stored.container,
        storage_path=stored.path,
        created_at=created_at,
    )
    session.add(upload)
    session.flush()
    job = job_store.create_job(session, upload.id, now=created_at)
    session.commit()

    uploads_ingested_total.labels(source_kind=source_kind).inc()
    LOGGER.info(
        "upload_ingested",
        upload_id=upload.id,
        job_id=job.id,
        client_id=client_id,
        provider=stored.provider,
        path=stored.path,
    )
    return IngestionResult(upload_id=upload.id, job_id=job.id, status=job.status)


def get_owned_upload(session: Session, upload_id: str, owner_user_id: str) -> Upload | None:
    return session.execute(
        select(Upload)
        .join(Client, Client.id == Upload.client_id)
        .where(Upload.id == upload_id, Client.owner_user_id == owner_user_id)
    ).scalar_one_or_none()


def requeue_upload(
    session: Session,
    *,
    owner_user_id: str,
    upload_id: str,
    now: datetime | None = None,
) -> Job:
    """Create another Pending job against an existing upload."""

    upload = get_owned_upload(session, upload_id, owner_user_id)
    if upload is None:
        raise NotFoundError("Upload not found")

    job = job_store.create_job(session, upload.id, now=now)
    session.commit()
    LOGGER.info("upload_requeued", upload_id=upload.id, job_id=job.id)
    return job


def get_owned_job(session: Session, job_id: str, owner_user_id: str) -> Job | None:
    return session.execute(
        select(Job)
        .options(selectinload(Job.output_artifacts))
        .join(Upload, Upload.id == Job.upload_id)
        .join(Client, Client.id == Upload.client_id)
        .where(Job.id == job_id, Client.owner_user_id == owner_user_id)
    ).scalar_one_or_none()


def list_uploads(
    session: Session,
    *,
    owner_user_id: str,
    client_id: str,
    filing_period_id: str,
) -> list[Upload]:
    """Return the period's uploads newest first, with jobs and artifacts loaded."""

    period = find_owned_filing_period(session, client_id, filing_period_id, owner_user_id)
    if period is None:
        raise NotFoundError("Filing period not found")

    return list(
        session.execute(
            select(Upload)
            .options(selectinload(Upload.jobs).selectinload(Job.output_artifacts))
            .where(
                Upload.client_id == client_id,
                Upload.filing_period_id == filing_period_id,
            )
            .order_by(Upload.created_at.desc())
        ).scalars()
    )


def open_artifact(
    session: Session,
    storage: FileStorage,
    *,
    owner_user_id: str,
    artifact_id: str,
) -> tuple[OutputArtifact, BinaryIO] | None:
    """Return the artifact and an open stream, or ``None`` if either is missing."""

    artifact = get_owned_artifact(session, artifact_id, owner_user_id)
    if artifact is None:
        return None

    stream = storage.open_read(artifact.stored_file)
    if stream is None:
        LOGGER.warning(
            "artifact_blob_missing",
            artifact_id=artifact.id,
            provider=artifact.storage_provider,
            path=artifact.storage_path,
        )
        return None
    return artifact, stream


__all__ = [
    "DEFAULT_MAX_UPLOAD_BYTES",
    "IngestionResult",
    "find_owned_filing_period",
    "get_owned_job",
    "get_owned_upload",
    "ingest_upload",
    "list_uploads",
    "open_artifact",
    "requeue_upload",
    "validate_upload",
]
