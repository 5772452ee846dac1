"""Filing period model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, generate_uuid, utcnow

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .client import Client
    from .output_artifact import OutputArtifact
    from .upload import Upload


class FilingPeriod(Base):
    """A (year, month) reporting window for one client."""

    __tablename__ = "filing_periods"
    __table_args__ = (
        UniqueConstraint("client_id", "year", "month", name="uq_filing_periods_client_month"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_filing_periods_month"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    client_id: Mapped[str] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    client: Mapped["Client"] = relationship("Client", back_populates="filing_periods")
    uploads: Mapped[list["Upload"]] = relationship(
        "Upload",
        back_populates="filing_period",
        cascade="all, delete-orphan",
    )
    output_artifacts: Mapped[list["OutputArtifact"]] = relationship(
        "OutputArtifact",
        back_populates="filing_period",
        passive_deletes=True,
    )
