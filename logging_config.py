"""Central loguru configuration for the application."""

from __future__ import annotations

import logging
import os
import sys
import threading
from contextlib import suppress
from pathlib import Path

from loguru import logger

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = Path(os.getenv("LOG_FILE", Path(__file__).resolve().parent / "logs" / "app.log"))
LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
)

_lock = threading.Lock()
_handler_ids: list[int] = []


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records (uvicorn, starlette) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _configure(level: str) -> None:
    for handler_id in _handler_ids:
        with suppress(ValueError):
            logger.remove(handler_id)
    _handler_ids.clear()
    _handler_ids.append(logger.add(sys.stderr, level=level, format=LOG_FORMAT))
    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        _handler_ids.append(
            logger.add(
                str(LOG_FILE),
                level=level,
                format=LOG_FORMAT,
                rotation="5 MB",
                retention=10,
                enqueue=True,
            )
        )
    except OSError as exc:
        logger.warning("file logging disabled: {}", exc)


# set_log_level routine
def set_log_level(level: str) -> None:
    """Reconfigure loguru sinks with ``level``. Safe to call from any thread."""
    global LOG_LEVEL
    level = (level or "INFO").upper()
    with _lock:
        LOG_LEVEL = level
        _configure(level)


def setup_logging() -> None:
    """Install the default sinks and route stdlib logging into loguru."""
    logger.remove()
    set_log_level(LOG_LEVEL)
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
