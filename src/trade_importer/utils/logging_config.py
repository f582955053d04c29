"""Logging setup for the trade importer.

All modules log through children of the ``trade_importer`` logger. Connector
parameters (API keys and secrets) pass through LogContext, which masks them
before anything is written.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Mapping

ROOT_LOGGER = "trade_importer"
DEFAULT_LOG_FILE = "trade_importer.log"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Compared after dropping "_"/"-" and lowercasing: apiKey, api_key, API-KEY
SECRET_KEYS = frozenset({"apikey", "apisecret", "secret", "password", "passphrase", "token"})
MASK = "***"


def is_secret_key(key: str) -> bool:
    """Return True if a context key names a credential."""
    return key.replace("_", "").replace("-", "").lower() in SECRET_KEYS


def mask_secrets(context: Mapping[str, object]) -> dict[str, object]:
    """Copy a context mapping with credential values replaced by a mask.

    Args:
        context: Context values keyed by name.

    Returns:
        New dict safe to write to a log.
    """
    return {key: MASK if is_secret_key(key) else value for key, value in context.items()}


def _make_handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
) -> logging.Logger:
    """Configure the package logger.

    Safe to call repeatedly (the CLI reconfigures once settings are loaded);
    handlers from a previous call are closed first.

    Args:
        level: Log level name; unknown names fall back to INFO.
        log_file: Log file path (default DEFAULT_LOG_FILE); parent
            directories are created.
        console_output: Also log to stderr.

    Returns:
        The configured ``trade_importer`` logger.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)

    for old in list(logger.handlers):
        old.close()
        logger.removeHandler(old)

    log_path = Path(log_file or DEFAULT_LOG_FILE)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger.addHandler(_make_handler(logging.FileHandler(log_path, encoding="utf-8"), numeric_level))

    if console_output:
        logger.addHandler(_make_handler(logging.StreamHandler(sys.stderr), numeric_level))

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``trade_importer`` hierarchy.

    Args:
        name: Module name (typically __name__).
    """
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class LogContext:
    """Context manager logging the start, duration and failure of an operation.

    Context values are masked with mask_secrets. A failure is logged once,
    with traceback, and then re-raised; callers should not log it again.
    """

    def __init__(self, logger: logging.Logger, operation: str, **context: object):
        """Initialize log context.

        Args:
            logger: Logger instance to use.
            operation: Name of the operation being performed.
            **context: Values describing the operation (credentials allowed).
        """
        self.logger = logger
        self.operation = operation
        self.context = mask_secrets(context)
        self._started = 0.0

    def __enter__(self) -> "LogContext":
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        self.logger.debug(f"Starting {self.operation}: {details}")
        self._started = time.monotonic()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> bool:
        elapsed_ms = (time.monotonic() - self._started) * 1000
        if exc_type is not None:
            self.logger.error(
                f"{self.operation} failed after {elapsed_ms:.0f} ms: {exc_type.__name__}: {exc_val}",
                exc_info=True,
            )
        else:
            self.logger.debug(f"Completed {self.operation} in {elapsed_ms:.0f} ms")
        return False
