"""Output artifact download endpoint."""

from __future__ import annotations

from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.backend.src.core.security import get_current_user
from app.backend.src.core.storage import StorageGateway, get_storage_gateway
from app.backend.src.db import get_session_dependency
from app.backend.src.models import User
from app.backend.src.services.ingestion import open_artifact

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/artifacts", tags=["artifacts"])

_CHUNK_SIZE = 64 * 1024


def _iter_stream(stream):
    try:
        while True:
            chunk = stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


def _content_disposition(filename: str) -> str:
    """Build an attachment header with an ASCII fallback and an RFC 5987 name."""

    fallback = "".join(
        ch if 32 <= ord(ch) < 127 and ch not in '"\\' else "_" for ch in filename
    )
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/{artifact_id}/download")
def download_artifact(
    artifact_id: str,
    session: Session = Depends(get_session_dependency),
    current_user: User = Depends(get_current_user),
    storage: StorageGateway = Depends(get_storage_gateway),
) -> StreamingResponse:
    """Stream an artifact owned by the current user."""

    opened = open_artifact(
        session, storage, owner_user_id=current_user.id, artifact_id=artifact_id
    )
    if opened is None:
        raise HTTPException(status_code=404, detail="Artifact not found")

    artifact, stream = opened
    LOGGER.info("artifact_download", artifact_id=artifact.id, user_id=current_user.id)
    return StreamingResponse(
        _iter_stream(stream),
        media_type=artifact.content_type,
        headers={"Content-Disposition": _content_disposition(artifact.filename)},
    )
