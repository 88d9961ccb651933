"""Loguru logging for the gateway.

Standard-library loggers (uvicorn, httpx, the Anthropic SDK) are routed into
loguru. Lines emitted while a backend call is in flight are tagged with the
provider kind so SDK retries and HTTP traces can be told apart.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

current_provider: ContextVar[str] = ContextVar("current_provider", default="")

# Loggers whose records describe the outbound backend call
_BACKEND_LOGGERS = ("httpx", "httpcore", "anthropic")

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def _is_backend_record(record: logging.LogRecord) -> bool:
    return record.name.split(".", 1)[0] in _BACKEND_LOGGERS


class InterceptHandler(logging.Handler):
    """Forward standard logging records to loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        message = record.getMessage()
        provider_name = current_provider.get()
        if provider_name and _is_backend_record(record):
            message = f"[provider={provider_name}] {message}"

        logger.opt(depth=depth, exception=record.exc_info).log(level, message)


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure console logging and, when ``log_file`` is set, a rotating file sink"""
    logger.remove()
    logger.add(sys.stdout, format=_CONSOLE_FORMAT, level=log_level, colorize=True)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=_FILE_FORMAT,
            level="DEBUG",
            rotation="500 MB",
            retention="10 days",
            compression="zip",
            encoding="utf-8",
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi", *_BACKEND_LOGGERS):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    logger.info(f"Logging initialized: level={log_level}, file={log_file or '-'}")


@contextmanager
def provider_context(provider_name: str) -> Iterator[None]:
    """Tag backend log lines emitted inside the block with ``provider_name``"""
    token = current_provider.set(provider_name)
    try:
        yield
    finally:
        current_provider.reset(token)


def get_logger():
    return logger
