"""
Logging configuration for the CashCode driver.

This module provides a centralized logging setup with support for:
- Console output with colored formatting
- Optional file rotation with size limits
- Optional remote logging to Loki
"""

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Optional

import colorlog
import httpx

from .settings import LoggingSettings


# =============================================================================
# Constants
# =============================================================================

PACKAGE_LOGGER: Final[str] = "cashcode"
DEFAULT_LOG_FORMAT: Final[str] = (
    "%(name)s | %(asctime)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s"
)
DEFAULT_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
MAX_LOG_FILE_SIZE: Final[int] = 5 * 1024 * 1024  # 5 MB
LOG_BACKUP_COUNT: Final[int] = 3
LOKI_TIMEOUT: Final[float] = 2.0


# =============================================================================
# Color Configuration
# =============================================================================

LOG_COLORS: Final[dict[str, str]] = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


# =============================================================================
# Loki Integration
# =============================================================================

class LokiHandler(logging.Handler):
    """
    Logging handler that pushes records to Loki.

    Attributes:
        url: Loki push endpoint.
        app: Application name for Loki labels.
    """

    def __init__(self, url: str, app: str, client: Optional[httpx.Client] = None) -> None:
        super().__init__()
        self.url = url
        self.app = app
        self._client = client or httpx.Client(timeout=LOKI_TIMEOUT)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            payload = {
                "streams": [
                    {
                        "stream": {"level": record.levelname.upper(), "app": self.app},
                        "values": [[str(int(time.time() * 1e9)), self.format(record)]],
                    }
                ]
            }
            self._client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            # Logging from here would recurse into this handler
            print(f"[Loki send error]: {e}", file=sys.stderr)
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self._client.close()
        super().close()


# =============================================================================
# Logger Setup
# =============================================================================

def setup_logging(settings: LoggingSettings) -> logging.Logger:
    """
    Configure the package logger with console, file and Loki handlers.

    Repeated calls return the already configured logger.

    Args:
        settings: Logging settings.

    Returns:
        The configured package logger.
    """
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger_instance = logging.getLogger(PACKAGE_LOGGER)
    logger_instance.setLevel(level)

    # Avoid duplicate handlers on repeated calls
    if logger_instance.handlers:
        return logger_instance

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        "%(name)s | %(log_color)s%(asctime)s | %(levelname)s | "
        "%(funcName)s:%(lineno)d | %(message)s",
        datefmt=DEFAULT_DATE_FORMAT,
        log_colors=LOG_COLORS,
    ))
    logger_instance.addHandler(console_handler)

    if settings.log_file:
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.log_file,
            maxBytes=MAX_LOG_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            fmt=DEFAULT_LOG_FORMAT,
            datefmt=DEFAULT_DATE_FORMAT,
        ))
        logger_instance.addHandler(file_handler)

    if settings.loki_url:
        loki_handler = LokiHandler(settings.loki_url, settings.app)
        # TX/RX hex dumps stay local
        loki_handler.setLevel(max(level, logging.INFO))
        loki_handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
            datefmt=DEFAULT_DATE_FORMAT,
        ))
        logger_instance.addHandler(loki_handler)

    return logger_instance
