"""Data Access Objects package."""

from .base import BaseDAO
from .job_dao import JobDAO

__all__ = [
    "BaseDAO",
    "JobDAO",
]
