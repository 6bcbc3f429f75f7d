"""Logging setup for the mask packer.

Packing is a one-shot command, so the ``mask_packer`` logger owns two named
handlers: a terse console handler on stderr and an optional rotating file
handler with timestamps. Calling :func:`setup_logging` again replaces them
instead of stacking duplicates.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional

logger = logging.getLogger("mask_packer")

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# 1 MB per log file, keep 3 rotated backups
_LOG_MAX_BYTES = 1024 * 1024
_LOG_BACKUP_COUNT = 3

_CONSOLE_HANDLER = "mask_packer.console"
_FILE_HANDLER = "mask_packer.file"


def _parse_level(level) -> int:
    if isinstance(level, int):
        return level
    numeric_level = logging.getLevelName(str(level).upper())
    if not isinstance(numeric_level, int):
        logger.warning("Invalid log level '%s', defaulting to INFO", level)
        return logging.INFO
    return numeric_level


def _install(handler: logging.Handler, name: str) -> None:
    """Attach ``handler`` under ``name``, closing any previous one."""
    _remove(name)
    handler.set_name(name)
    logger.addHandler(handler)


def _remove(name: str) -> None:
    for existing in list(logger.handlers):
        if existing.get_name() == name:
            logger.removeHandler(existing)
            existing.close()


def setup_logging(level="INFO", log_file: Optional[str] = None, stream=None):
    """Route ``mask_packer`` records to stderr and, optionally, a log file.

    The package logger stops propagating so records are not printed twice
    when the host (or an early ``basicConfig``) already configured root.
    """
    numeric_level = _parse_level(level)
    logger.setLevel(numeric_level)
    logger.propagate = False

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    _install(console, _CONSOLE_HANDLER)

    if not log_file:
        _remove(_FILE_HANDLER)
        return

    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=_LOG_MAX_BYTES, backupCount=_LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    _install(file_handler, _FILE_HANDLER)
    logger.debug("Logging to %s", log_file)
