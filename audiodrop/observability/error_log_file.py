"""Rotating file handler collecting warnings and errors.

Job failures are only visible in logs (and the job store), so warnings and
errors are also written to a dedicated file that survives container log
rotation.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from audiodrop.config import AppConfig


_error_file_handler: RotatingFileHandler | None = None

ERROR_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"


def _resolve_log_path(raw: str) -> Path:
    log_file = Path(raw).expanduser()
    if not log_file.is_absolute():
        from audiodrop.config import _find_repo_root

        log_file = _find_repo_root(start=Path(__file__)) / log_file
    return log_file.resolve()


def setup_error_log_file(config: "AppConfig") -> RotatingFileHandler | None:
    """Attach the error log handler to the root logger.

    Calling it again replaces the previous handler.

    Args:
        config: Application configuration with error log settings.

    Returns:
        The configured RotatingFileHandler, or None if disabled or the file
        cannot be opened.
    """
    global _error_file_handler

    if not config.error_log_file_enabled:
        return None

    log_file = _resolve_log_path(config.error_log_file_path)
    log_level = getattr(logging, config.error_log_level.upper(), logging.WARNING)

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=config.error_log_max_bytes,
            backupCount=config.error_log_backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        # Logging is not configured yet at this point.
        print(f"Warning: Cannot create error log file {log_file}: {e}", file=sys.stderr)
        return None

    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(fmt=ERROR_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root_logger = logging.getLogger()
    if _error_file_handler is not None:
        root_logger.removeHandler(_error_file_handler)
        _error_file_handler.close()
    root_logger.addHandler(handler)
    _error_file_handler = handler

    logging.getLogger(__name__).info(
        "Error log file handler initialized: %s (level=%s)",
        log_file,
        logging.getLevelName(log_level),
    )
    return handler


def get_error_log_handler() -> RotatingFileHandler | None:
    """Get the current error log file handler, if configured."""
    return _error_file_handler
