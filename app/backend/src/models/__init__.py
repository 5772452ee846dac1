"""ORM models exposed for easy imports."""

from .base import Base
from .client import Client
from .client_config import ClientConfig
from .filing_period import FilingPeriod
from .job import Job, JobStatus
from .output_artifact import OutputArtifact
from .upload import Upload
from .user import User

__all__ = [
    "Base",
    "Client",
    "ClientConfig",
    "FilingPeriod",
    "Job",
    "JobStatus",
    "OutputArtifact",
    "Upload",
    "User",
]
