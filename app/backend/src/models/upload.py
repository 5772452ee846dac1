"""Upload model."""

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
    from .user import User

SOURCE_KINDS: tuple[str, ...] = ("Excel", "PDF")
FILENAME_MAX_LENGTH = 260


class Upload(Base):
    """An uploaded input document; immutable once created."""

    __tablename__ = "uploads"
    __table_args__ = (
        Index("ix_uploads_client_period_created", "client_id", "filing_period_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    client_id: Mapped[str] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    filing_period_id: Mapped[str] = mapped_column(
        ForeignKey("filing_periods.id", ondelete="CASCADE"), nullable=False
    )
    uploaded_by_user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    original_filename: Mapped[str] = mapped_column(String(FILENAME_MAX_LENGTH), nullable=False)
    content_type: Mapped[str] = mapped_column(
        String(120), nullable=False, default="application/octet-stream"
    )
    source_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    storage_provider: Mapped[str] = mapped_column(String(40), nullable=False)
    storage_container: Mapped[str] = mapped_column(String(80), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    client: Mapped["Client"] = relationship("Client", back_populates="uploads")
    filing_period: Mapped["FilingPeriod"] = relationship("FilingPeriod", back_populates="uploads")
    uploaded_by: Mapped["User"] = relationship("User", back_populates="uploads")
    jobs: Mapped[list["Job"]] = relationship(
        "Job",
        back_populates="upload",
        cascade="all, delete-orphan",
        order_by="Job.created_at.desc()",
    )

    @property
    def stored_file(self) -> StoredFileReference:
        """Return the storage reference of the input blob."""

        return StoredFileReference(
            self.storage_provider, self.storage_container, self.storage_path
        )
