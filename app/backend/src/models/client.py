"""Client model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, generate_uuid, utcnow

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .client_config import ClientConfig
    from .filing_period import FilingPeriod
    from .upload import Upload
    from .user import User


class Client(Base):
    """An accounting client owned by a single user."""

    __tablename__ = "clients"
    __table_args__ = (Index("ix_clients_owner_name", "owner_user_id", "name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    owner_user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    tax_id: Mapped[str] = mapped_column(String(32), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(2000))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    owner: Mapped["User"] = relationship("User", back_populates="clients")
    configurations: Mapped[list["ClientConfig"]] = relationship(
        "ClientConfig",
        back_populates="client",
        cascade="all, delete-orphan",
    )
    filing_periods: Mapped[list["FilingPeriod"]] = relationship(
        "FilingPeriod",
        back_populates="client",
        cascade="all, delete-orphan",
    )
    uploads: Mapped[list["Upload"]] = relationship(
        "Upload",
        back_populates="client",
        cascade="all, delete-orphan",
    )
