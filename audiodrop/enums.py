"""StrEnum definitions for type-safe constants."""

from enum import StrEnum


class JobStatus(StrEnum):
    """Lifecycle states of an extraction job."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(StrEnum):
    """Why a job ended in the failed state."""

    WORKSPACE_ERROR = "workspace_error"
    EXTRACTION_FAILED = "extraction_failed"
    EXTRACTION_TIMEOUT = "extraction_timeout"
    NO_OUTPUT = "no_output"
    ARCHIVE_FAILED = "archive_failed"
    INTERNAL_ERROR = "internal_error"


class ArtifactKind(StrEnum):
    """Shape of the downloadable result of a job."""

    FILE = "file"
    ARCHIVE = "archive"
