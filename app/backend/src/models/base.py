"""SQLAlchemy declarative base and shared column defaults."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base for SQLAlchemy models."""

    pass


def generate_uuid() -> str:
    """Return a new opaque identifier for primary keys."""

    return str(uuid4())


def utcnow() -> datetime:
    """Return the current UTC time."""

    return datetime.now(timezone.utc)


__all__ = ["Base", "generate_uuid", "utcnow"]
