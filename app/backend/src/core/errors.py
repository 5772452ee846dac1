"""Exception types shared by the pipeline and its HTTP surface."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for errors raised by the upload pipeline."""


class StorageConfigurationError(PipelineError):
    """A storage backend is missing a required connection parameter."""


class NotFoundError(PipelineError):
    """A requested row does not exist or is not owned by the caller."""


class UploadValidationError(PipelineError):
    """An upload was rejected before it reached storage."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


__all__ = [
    "NotFoundError",
    "PipelineError",
    "StorageConfigurationError",
    "UploadValidationError",
]
