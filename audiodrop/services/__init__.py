"""Business logic services package."""

from .archive_builder import ArchiveBuilder, archive_name
from .extractor import ExternalExtractor, ExtractionResult
from .job_runner import JobRunner, build_download_link
from .job_service import JobService
from .notifier import Notifier
from .retention import RetentionSweeper

__all__ = [
    "ArchiveBuilder",
    "ExternalExtractor",
    "ExtractionResult",
    "JobRunner",
    "JobService",
    "Notifier",
    "RetentionSweeper",
    "archive_name",
    "build_download_link",
]
