"""Public API routers exposed by the FastAPI application."""

from . import artifacts, health, jobs, uploads

__all__ = [
    "artifacts",
    "health",
    "jobs",
    "uploads",
]
