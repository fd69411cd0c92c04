"""Logging helpers and filters.

Shared by both entrypoints (`python -m audiodrop.main` and
`uvicorn audiodrop.asgi:app`).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

DEFAULT_QUIET_PATHS = ("/health",)


class SuppressAccessLogPaths(logging.Filter):
    """Drop Uvicorn access log records for selected request paths.

    Liveness probes hit /health every few seconds; their access lines would
    otherwise drown out form submissions and downloads.
    """

    def __init__(self, paths: Iterable[str] = DEFAULT_QUIET_PATHS) -> None:
        super().__init__()
        self.paths = tuple(paths)

    def _is_quiet(self, path: str) -> bool:
        base = path.split("?", 1)[0]
        return base in self.paths

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (filter)
        # Uvicorn access records carry
        #   (client_addr, method, full_path, http_version, status_code)
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            return not self._is_quiet(str(args[2]))
        return True


def install_uvicorn_access_log_filters(paths: Iterable[str] = DEFAULT_QUIET_PATHS) -> None:
    """Attach the path filter to Uvicorn's access logger.

    Safe to call multiple times.
    """
    access_logger = logging.getLogger("uvicorn.access")
    for existing in access_logger.filters:
        if isinstance(existing, SuppressAccessLogPaths):
            return
    access_logger.addFilter(SuppressAccessLogPaths(paths))
