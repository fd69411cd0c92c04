"""HTTP routers package."""

from .download_router import create_download_router, resolve_download_path
from .job_router import JobListResponse, create_job_router
from .submission_router import ACKNOWLEDGEMENT, FORM_HTML, create_submission_router

__all__ = [
    "ACKNOWLEDGEMENT",
    "FORM_HTML",
    "JobListResponse",
    "create_download_router",
    "create_job_router",
    "create_submission_router",
    "resolve_download_path",
]
