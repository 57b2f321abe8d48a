"""Logging for the ``statement_ingest`` package.

Library modules only ever call ``get_logger("statement_ingest.<module>")``;
handlers are installed once, by the CLI or the host application, through
:func:`configure_logging`. Until then the package logger carries a
``NullHandler`` and stays silent.

Messages about one import are emitted through :func:`import_logger`, which
prefixes them with the import id and file name so interleaved imports stay
readable in a shared log.

Environment
-----------
``STATEMENT_INGEST_LOG_LEVEL``
    Level name or number used when ``configure_logging`` gets no level.
``STATEMENT_INGEST_LOG_FILE``
    When set, records are also appended to this file.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import MutableMapping
from typing import IO, Any

_PKG_LOGGER_NAME = "statement_ingest"
LEVEL_ENV = "STATEMENT_INGEST_LOG_LEVEL"
FILE_ENV = "STATEMENT_INGEST_LOG_FILE"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_configured = False


def _parse_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    # getLevelName returns "Level X" for unknown names
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
    log_file: str | None = None,
) -> None:
    """Install the package handlers; later calls are no-ops.

    Parameters
    ----------
    level:
        ``int`` or level name. ``None`` reads ``STATEMENT_INGEST_LOG_LEVEL``
        and falls back to ``INFO``.
    fmt:
        Record format; defaults to :data:`DEFAULT_FORMAT`.
    stream:
        Stream for the console handler (``sys.stderr`` by default, so command
        output on stdout stays clean).
    log_file:
        Extra file destination; ``None`` reads ``STATEMENT_INGEST_LOG_FILE``.
    """

    global _configured
    if _configured:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    formatter = logging.Formatter(fmt or DEFAULT_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(stream)]
    path = log_file if log_file is not None else os.getenv(FILE_ENV)
    if path:
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(resolved)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(resolved)
    logger.propagate = False
    _configured = True


def reset_logging() -> None:
    """Remove and close the package handlers so logging can be configured again."""

    global _configured
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    _configured = False


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, keeping the package silent until configured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _configured and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


class ImportLogAdapter(logging.LoggerAdapter):
    """Prefix every message with ``[import <id> <file>]``."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        return f"[import {extra.get('import_id')} {extra.get('file_name')}] {msg}", kwargs


def import_logger(
    logger: logging.Logger, *, import_id: int | None, file_name: str
) -> ImportLogAdapter:
    return ImportLogAdapter(logger, {"import_id": import_id, "file_name": file_name})


__all__ = [
    "DEFAULT_FORMAT",
    "configure_logging",
    "reset_logging",
    "get_logger",
    "ImportLogAdapter",
    "import_logger",
]
