"""SQLAlchemy engine and session factory configuration."""

from __future__ import annotations

from pathlib import Path

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import sessionmaker

from app.backend.src.core.config import get_settings

LOGGER = structlog.get_logger(__name__)
PROJECT_ROOT = Path(__file__).resolve().parents[4]

# Seconds a SQLite connection waits on a competing writer before failing.
SQLITE_BUSY_TIMEOUT = 30


def _normalize_database_url(raw_url: str | URL) -> URL:
    """Return an absolute :class:`~sqlalchemy.engine.URL` for SQLite databases."""

    url = make_url(raw_url)
    if not url.drivername.startswith("sqlite"):
        return url

    database = url.database or ""
    if database in {"", ":memory:"}:
        return url

    db_path = Path(database)
    if db_path.is_absolute():
        resolved = db_path
    else:
        resolved = PROJECT_ROOT / db_path

    resolved = resolved.resolve()
    if resolved != db_path:
        LOGGER.info(
            "database_path_normalized",
            original=str(db_path),
            resolved=str(resolved),
        )

    return url.set(database=str(resolved))


def build_engine(raw_url: str | URL) -> Engine:
    """Create an engine; SQLite connections share the busy timeout used by the worker."""

    url = _normalize_database_url(raw_url)
    connect_args: dict[str, object] = {}
    if url.drivername.startswith("sqlite"):
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT
        # Pooled connections are handed to the API threadpool and worker threads.
        connect_args["check_same_thread"] = False
    return create_engine(
        url,
        pool_pre_ping=True,
        future=True,
        connect_args=connect_args,
    )


def build_session_factory(bind: Engine) -> sessionmaker:
    """Return a session factory with the project's session defaults."""

    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


_settings = get_settings()
engine = build_engine(_settings.database_url)
SessionLocal = build_session_factory(engine)

LOGGER.info("database_engine_initialized", url=engine.url.render_as_string(hide_password=True))

__all__ = ["build_engine", "build_session_factory", "engine", "SessionLocal"]
