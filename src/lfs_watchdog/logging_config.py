"""Logging setup for lfs-watchdog.

Log records can be emitted as one JSON object per line, which suits log
aggregation of a long-running webhook consumer, or as plain text for local
runs. Each commit is classified on its own worker thread, so contextual
fields such as the repository and commit SHA are kept per thread and merged
into every record emitted inside a ``log_context()`` block.
"""

import json
import logging
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Union

ROOT_LOGGER = "lfs_watchdog"

_local = threading.local()


def current_context() -> Dict[str, Any]:
    """Return the log context fields bound to the calling thread."""
    fields = getattr(_local, "fields", None)
    if fields is None:
        fields = {}
        _local.fields = fields
    return fields


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON documents.

    Standard fields are ``timestamp`` (UTC, ISO 8601), ``level``, ``logger``,
    ``message``, ``filename`` and ``lineno``. Anything passed through
    ``extra=`` or bound with ``log_context()`` is added at the top level;
    values that are not JSON serializable are rendered with ``str()``.
    """

    # Attributes every LogRecord carries; these never leak into the output.
    STANDARD_ATTRS = frozenset(
        vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
    ) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "filename": record.filename,
            "lineno": record.lineno,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key in self.STANDARD_ATTRS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            payload[key] = value

        return json.dumps(payload)


class ContextFilter(logging.Filter):
    """Copy static and thread-bound context fields onto each record."""

    def __init__(self, static_fields: Optional[Dict[str, Any]] = None) -> None:
        super().__init__()
        self.static_fields = dict(static_fields or {})

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.static_fields.items():
            setattr(record, key, value)
        for key, value in current_context().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind fields to every log record emitted by this thread within the block.

    Blocks nest; the previous fields are restored on exit.

    Example:
        with log_context(repository="org/repo", commit="1a2b3c"):
            logger.info("Classifying commit")
    """
    bound = current_context()
    saved = dict(bound)
    bound.update(fields)
    try:
        yield
    finally:
        bound.clear()
        bound.update(saved)


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure the ``lfs_watchdog`` logger tree.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit JSON lines (True) or plain text (False)
        log_file: Optional file to write to in addition to stdout

    Returns:
        The configured ``lfs_watchdog`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper()))

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter: Union[JSONFormatter, logging.Formatter]
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")

    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the ``lfs_watchdog.<name>`` child logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
