"""Output artifact registry."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.core.storage import StoredFileReference
from app.backend.src.models import Client, Job, OutputArtifact, Upload
from app.backend.src.models.base import utcnow


def register_artifact(
    session: Session,
    job: Job,
    upload: Upload,
    stored: StoredFileReference,
    *,
    filename: str,
    content_type: str,
    size_bytes: int,
    kind: str = "CSV",
    now: datetime | None = None,
) -> OutputArtifact:
    """Add an artifact row for ``job``; the caller commits."""

    artifact = OutputArtifact(
        parse_job_id=job.id,
        client_id=upload.client_id,
        filing_period_id=upload.filing_period_id,
        artifact_kind=kind,
        filename=filename,
        content_type=content_type,
        size_bytes=size_bytes,
        storage_provider=stored.provider,
        storage_container=stored.container,
        storage_path=stored.path,
        created_at=now or utcnow(),
    )
    session.add(artifact)
    return artifact


def list_artifacts(
    session: Session, client_id: str, filing_period_id: str
) -> list[OutputArtifact]:
    """Return the artifacts of one client period, newest first."""

    return list(
        session.execute(
            select(OutputArtifact)
            .where(
                OutputArtifact.client_id == client_id,
                OutputArtifact.filing_period_id == filing_period_id,
            )
            .order_by(OutputArtifact.created_at.desc())
        ).scalars()
    )


def list_artifacts_for_job(session: Session, job_id: str) -> list[OutputArtifact]:
    return list(
        session.execute(
            select(OutputArtifact)
            .where(OutputArtifact.parse_job_id == job_id)
            .order_by(OutputArtifact.created_at.desc())
        ).scalars()
    )


def get_owned_artifact(
    session: Session, artifact_id: str, owner_user_id: str
) -> OutputArtifact | None:
    """Return the artifact if its client belongs to ``owner_user_id``."""

    return session.execute(
        select(OutputArtifact)
        .join(Client, Client.id == OutputArtifact.client_id)
        .where(
            OutputArtifact.id == artifact_id,
            Client.owner_user_id == owner_user_id,
        )
    ).scalar_one_or_none()


__all__ = [
    "get_owned_artifact",
    "list_artifacts",
    "list_artifacts_for_job",
    "register_artifact",
]
