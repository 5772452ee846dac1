"""Prometheus metric definitions for the parse pipeline."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

parse_jobs_total = Counter(
    "parse_jobs_total",
    "Total parse jobs finished by the pipeline worker, by outcome.",
    labelnames=["status"],
)

parse_job_duration_seconds = Histogram(
    "parse_job_duration_seconds",
    "Time from claim to terminal state for a parse job in seconds.",
)

worker_poll_errors_total = Counter(
    "worker_poll_errors_total",
    "Unexpected errors raised while polling for pending jobs.",
)

uploads_ingested_total = Counter(
    "uploads_ingested_total",
    "Uploads stored and queued for processing, by source kind.",
    labelnames=["source_kind"],
)

__all__ = [
    "parse_job_duration_seconds",
    "parse_jobs_total",
    "uploads_ingested_total",
    "worker_poll_errors_total",
]
