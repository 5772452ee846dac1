"""Database engine and session helpers shared by the API, worker and scripts."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..models.base import Base

from .session import SessionLocal, build_engine, build_session_factory, engine as _engine


def get_session_dependency() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request.

    Services commit their own work; anything left open when the request fails
    is rolled back here.
    """

    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_engine() -> Engine:
    """Return the engine built from ``DATABASE_URL``."""

    return _engine


@contextmanager
def session_scope(factory: sessionmaker | None = None) -> Iterator[Session]:
    """Commit on success and roll back on error; used by CLI scripts."""

    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "build_session_factory",
    "get_engine",
    "get_session_dependency",
    "session_scope",
]
