"""Output artifact model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.backend.src.core.storage import StoredFileReference

from .base import Base, generate_uuid, utcnow

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .client import Client
    from .filing_period import FilingPeriod
    from .job import Job


class OutputArtifact(Base):
    """A file produced by a completed job; never mutated after insert."""

    __tablename__ = "output_artifacts"
    __table_args__ = (
        Index("ix_output_artifacts_client_period", "client_id", "filing_period_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    parse_job_id: Mapped[str] = mapped_column(
        ForeignKey("parse_jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id: Mapped[str] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    filing_period_id: Mapped[str] = mapped_column(
        ForeignKey("filing_periods.id", ondelete="CASCADE"), nullable=False
    )
    artifact_kind: Mapped[str] = mapped_column(String(20), nullable=False, default="CSV")
    filename: Mapped[str] = mapped_column(String(260), nullable=False)
    content_type: Mapped[str] = mapped_column(String(120), nullable=False, default="text/csv")
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    storage_provider: Mapped[str] = mapped_column(String(40), nullable=False)
    storage_container: Mapped[str] = mapped_column(String(80), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    job: Mapped["Job"] = relationship("Job", back_populates="output_artifacts")
    client: Mapped["Client"] = relationship("Client")
    filing_period: Mapped["FilingPeriod"] = relationship(
        "FilingPeriod", back_populates="output_artifacts"
    )

    @property
    def stored_file(self) -> StoredFileReference:
        """Return the storage reference of the artifact bytes."""

        return StoredFileReference(
            self.storage_provider, self.storage_container, self.storage_path
        )
