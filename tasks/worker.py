"""Pipeline worker process entrypoint.

Run with ``python -m tasks.worker``. The process polls the job store until it
receives SIGINT or SIGTERM; a job that is being processed when the signal
arrives is finished before the process exits.
"""

from __future__ import annotations

import signal
import threading
from typing import Any

import structlog
from sqlalchemy import text

from app.backend.src.core.config import Settings, get_settings
from app.backend.src.core.logging import configure_logging
from app.backend.src.core.storage import build_storage_gateway
from app.backend.src.db import SessionLocal, get_engine
from app.backend.src.models import Base
from app.backend.src.services.pipeline import PipelineWorker

LOGGER = structlog.get_logger(__name__)


def _verify_database_connectivity() -> None:
    """Eagerly validate the database connection and create missing tables.

    If the worker cannot reach the database we fail fast with a clear log
    message instead of idling in the error back-off loop from the first poll.
    """

    engine = get_engine()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - requires an unreachable database
        LOGGER.error(
            "database_unavailable",
            url=engine.url.render_as_string(hide_password=True),
            error=str(exc),
        )
        raise
    Base.metadata.create_all(bind=engine)


def build_worker(
    settings: Settings | None = None,
    *,
    stop_event: threading.Event | None = None,
) -> PipelineWorker:
    """Wire a :class:`PipelineWorker` from settings."""

    settings = settings or get_settings()
    storage = build_storage_gateway(settings)
    return PipelineWorker(
        SessionLocal,
        storage,
        output_container=settings.output_container,
        poll_interval=settings.worker_poll_interval_seconds,
        error_backoff=settings.worker_error_backoff_seconds,
        stop_event=stop_event,
    )


def _install_signal_handlers(worker: PipelineWorker) -> None:
    def _request_shutdown(signum: int, _frame: Any) -> None:
        LOGGER.info("pipeline_worker_shutdown_requested", signal=signal.Signals(signum).name)
        worker.stop()

    signal.signal(signal.SIGINT, _request_shutdown)
    signal.signal(signal.SIGTERM, _request_shutdown)


def main() -> None:
    configure_logging()
    settings = get_settings()
    _verify_database_connectivity()
    worker = build_worker(settings)
    _install_signal_handlers(worker)
    LOGGER.info(
        "pipeline_worker_configuration",
        storage_provider=settings.storage_provider,
        upload_container=settings.upload_container,
        output_container=settings.output_container,
    )
    worker.run()


if __name__ == "__main__":
    main()


__all__ = ["build_worker", "main"]
