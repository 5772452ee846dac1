"""Parse job model for tracking pipeline work."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, generate_uuid, utcnow

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .output_artifact import OutputArtifact
    from .upload import Upload

ERROR_MESSAGE_MAX_LENGTH = 2000


class JobStatus(str, enum.Enum):
    """Lifecycle states; transitions only move Pending -> Running -> terminal."""

    PENDING = "Pending"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class Job(Base):
    """Represents one asynchronous processing attempt of an upload."""

    __tablename__ = "parse_jobs"
    __table_args__ = (Index("ix_parse_jobs_status_created", "status", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    upload_id: Mapped[str] = mapped_column(
        ForeignKey("uploads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JobStatus.PENDING.value
    )
    error_message: Mapped[str | None] = mapped_column(String(ERROR_MESSAGE_MAX_LENGTH))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    upload: Mapped["Upload"] = relationship("Upload", back_populates="jobs")
    output_artifacts: Mapped[list["OutputArtifact"]] = relationship(
        "OutputArtifact",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="OutputArtifact.created_at.desc()",
    )
