"""Loguru setup shared by the CLI and scripts.

httpx and httpcore log through the standard library; their records are routed
into Loguru so there is a single sink configuration.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from loguru import logger

__all__ = ["configure_logging"]


class _LoguruInterceptHandler(logging.Handler):
    """Bridge standard-library logging records into Loguru."""

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - thin wrapper
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.opt(exception=record.exc_info).log(level, record.getMessage())


def _configure_stdlib_logging(level: str) -> None:
    handler: logging.Handler = _LoguruInterceptHandler()
    numeric = logging.getLevelName(level)
    if not isinstance(numeric, int):
        # Loguru-only levels (TRACE, SUCCESS).
        numeric = logging.DEBUG if level == "TRACE" else logging.INFO
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric)
    # httpcore is chatty at DEBUG (one line per connection state change).
    logging.getLogger("httpcore").setLevel(max(logging.INFO, numeric))
    logging.captureWarnings(True)


def configure_logging(level: str = "INFO", *, log_file: Path | None = None) -> None:
    """Install a stderr sink and, optionally, a rotating file sink."""

    level = (level or "INFO").upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        backtrace=False,
        diagnose=False,
    )
    if log_file is not None:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            path,
            level=level,
            rotation="10 MB",
            retention="14 days",
            enqueue=True,
            backtrace=False,
            diagnose=False,
        )

    _configure_stdlib_logging(level)
    logger.bind(module="logs").debug("Logging initialised at level {} file={}", level, log_file)
