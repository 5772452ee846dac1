"""Polling pipeline worker.

The worker claims the oldest Pending job, runs the transform step on its input,
stores the returned artifacts and records the outcome. One job is processed at
a time per worker; several workers may run side by side because the claim is
atomic in the job store.

Loop states::

    Polling --no job--> Idle --sleep(poll_interval)--> Polling
    Polling --claimed--> Processing --> Polling
    Polling --error--> sleep(error_backoff) --> Polling

The stop event is checked between iterations only, so a transform that is
already running finishes and its outcome is recorded before the loop exits.
"""

from __future__ import annotations

import enum
import threading
from datetime import datetime
from time import perf_counter
from typing import Callable

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from app.backend.src.core.storage import FileStorage, build_output_path
from app.backend.src.models import ClientConfig, FilingPeriod, Job, Upload
from app.backend.src.models.base import utcnow
from app.backend.src.services import job_store
from app.backend.src.services.artifacts import register_artifact
from app.backend.src.services.metrics import (
    parse_job_duration_seconds,
    parse_jobs_total,
    worker_poll_errors_total,
)
from app.backend.src.services.transform import (
    PlaceholderTransform,
    TransformArtifact,
    TransformContext,
    TransformFailure,
    TransformOutcome,
    TransformStep,
    TransformSuccess,
)

LOGGER = structlog.get_logger(__name__)

DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_ERROR_BACKOFF = 5.0


class PollOutcome(str, enum.Enum):
    """Result of a single poll iteration."""

    IDLE = "idle"
    COMPLETED = "completed"
    FAILED = "failed"
    ERROR = "error"


def get_active_client_config(session: Session, client_id: str) -> ClientConfig | None:
    """Return the most recently updated active configuration of a client."""

    return session.execute(
        select(ClientConfig)
        .where(ClientConfig.client_id == client_id, ClientConfig.is_active.is_(True))
        .order_by(ClientConfig.updated_at.desc())
        .limit(1)
    ).scalar_one_or_none()


class PipelineWorker:
    """Single-concurrency job processor with an injectable clock and sleep."""

    def __init__(
        self,
        session_factory: sessionmaker,
        storage: FileStorage,
        transform: TransformStep | None = None,
        *,
        output_container: str = "outputs",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        error_backoff: float = DEFAULT_ERROR_BACKOFF,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], object] | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._storage = storage
        self._transform = transform or PlaceholderTransform()
        self._output_container = output_container
        self._poll_interval = poll_interval
        self._error_backoff = error_backoff
        self._clock = clock
        self._stop_event = stop_event or threading.Event()
        self._sleep = sleep or self._stop_event.wait

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def stop(self) -> None:
        """Ask the loop to exit after the current iteration."""

        self._stop_event.set()

    def run(self) -> None:
        """Poll until the stop event is set."""

        LOGGER.info(
            "pipeline_worker_started",
            poll_interval=self._poll_interval,
            error_backoff=self._error_backoff,
            output_container=self._output_container,
        )
        while not self._stop_event.is_set():
            outcome = self.run_once()
            if self._stop_event.is_set():
                break
            if outcome is PollOutcome.IDLE:
                self._sleep(self._poll_interval)
            elif outcome is PollOutcome.ERROR:
                self._sleep(self._error_backoff)
        LOGGER.info("pipeline_worker_stopped")

    def run_once(self) -> PollOutcome:
        """Claim and process at most one job; never raises."""

        try:
            with self._session_factory() as session:
                job = job_store.claim_next_pending(session, now=self._clock())
                if job is None:
                    return PollOutcome.IDLE
                return self._process(session, job.id)
        except Exception as exc:
            worker_poll_errors_total.inc()
            LOGGER.error("pipeline_worker_poll_failed", error=str(exc), exc_info=True)
            return PollOutcome.ERROR

    def _process(self, session: Session, job_id: str) -> PollOutcome:
        started = perf_counter()
        job = job_store.get_job_for_processing(session, job_id)
        if job is None:
            LOGGER.warning("claimed_job_missing", job_id=job_id)
            return PollOutcome.ERROR

        upload = job.upload
        period = upload.filing_period
        log = LOGGER.bind(job_id=job.id, upload_id=upload.id, client_id=upload.client_id)
        log.info(
            "job_processing_started",
            source_kind=upload.source_kind,
            year=period.year,
            month=period.month,
        )

        try:
            outcome = self._run_transform(session, job, upload, period)
        except Exception as exc:
            log.warning("transform_raised", error=str(exc))
            outcome = TransformFailure(reason=str(exc) or exc.__class__.__name__)

        if isinstance(outcome, TransformFailure):
            return self._fail(session, job.id, outcome.reason, started)

        try:
            count = self._persist_outputs(session, job, upload, period, outcome.artifacts)
        except Exception as exc:
            session.rollback()
            log.error("artifact_persistence_failed", error=str(exc))
            return self._fail(session, job.id, str(exc) or exc.__class__.__name__, started)

        parse_jobs_total.labels(status="completed").inc()
        parse_job_duration_seconds.observe(perf_counter() - started)
        log.info("job_completed", artifacts=count)
        return PollOutcome.COMPLETED

    def _run_transform(
        self,
        session: Session,
        job: Job,
        upload: Upload,
        period: FilingPeriod,
    ) -> TransformOutcome:
        config = get_active_client_config(session, upload.client_id)
        prefill_values = config.prefill_values if config else None
        stream = self._storage.open_read(upload.stored_file)
        if stream is None:
            return TransformFailure(reason=f"Input file not found: {upload.storage_path}")

        # JSON documents are handed over as stored; only a missing value becomes {}.
        context = TransformContext(
            input_stream=stream,
            source_kind=upload.source_kind,
            client_id=upload.client_id,
            year=period.year,
            month=period.month,
            original_filename=upload.original_filename,
            job_id=job.id,
            prefill_values={} if prefill_values is None else prefill_values,
            transformation_rules=config.transformation_rules if config else None,
        )
        try:
            outcome = self._transform(context)
        finally:
            stream.close()

        if not isinstance(outcome, (TransformSuccess, TransformFailure)):
            raise TypeError(
                f"Transform returned {type(outcome).__name__}, "
                "expected TransformSuccess or TransformFailure"
            )
        return outcome

    def _persist_outputs(
        self,
        session: Session,
        job: Job,
        upload: Upload,
        period: FilingPeriod,
        artifacts: list[TransformArtifact],
    ) -> int:
        now = self._clock()
        for index, artifact in enumerate(artifacts):
            path = build_output_path(
                upload.client_id,
                period.year,
                period.month,
                job.id,
                artifact.extension,
                index=index,
            )
            stored = self._storage.save(
                self._output_container, path, artifact.content, artifact.content_type
            )
            register_artifact(
                session,
                job,
                upload,
                stored,
                filename=artifact.filename,
                content_type=artifact.content_type,
                size_bytes=len(artifact.content),
                kind=artifact.artifact_kind,
                now=now,
            )
        session.flush()

        if not job_store.mark_completed(session, job.id, now=now, commit=False):
            raise RuntimeError(f"Job {job.id} is no longer running")
        session.commit()
        return len(artifacts)

    def _fail(self, session: Session, job_id: str, reason: str, started: float) -> PollOutcome:
        job_store.mark_failed(
            session, job_id, f"Pipeline error: {reason}", now=self._clock()
        )
        parse_jobs_total.labels(status="failed").inc()
        parse_job_duration_seconds.observe(perf_counter() - started)
        LOGGER.warning("job_failed", job_id=job_id, error=reason)
        return PollOutcome.FAILED


__all__ = [
    "DEFAULT_ERROR_BACKOFF",
    "DEFAULT_POLL_INTERVAL",
    "PipelineWorker",
    "PollOutcome",
    "get_active_client_config",
]
