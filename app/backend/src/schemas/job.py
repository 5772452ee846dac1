"""Job API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .artifact import OutputArtifactRead


class JobRead(BaseModel):
    """Schema for parse job records exposed via the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    upload_id: str
    status: str
    error_message: str | None
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None
    artifacts: list[OutputArtifactRead] = Field(
        default_factory=list,
        validation_alias=AliasChoices("artifacts", "output_artifacts"),
    )
