"""Observability utilities (error log file)."""

from audiodrop.observability.error_log_file import (
    get_error_log_handler,
    setup_error_log_file,
)

__all__ = [
    "get_error_log_handler",
    "setup_error_log_file",
]
