"""Upload schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from .job import JobRead


class UploadRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    filing_period_id: str
    original_filename: str
    source_kind: str
    content_type: str
    size_bytes: int
    created_at: datetime
    jobs: list[JobRead] = []


class UploadCreated(BaseModel):
    upload_id: str
    job_id: str
    status: str
