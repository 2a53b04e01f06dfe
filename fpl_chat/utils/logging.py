"""Logging configuration shared by the API server and the terminal client."""

import logging
import os
import sys
from pathlib import Path

from pydantic import BaseModel

NOISY_LOGGERS = ("anthropic", "httpx", "httpcore", "uvicorn.access")


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    # Interactive clients log to a file so records do not interleave with live output.
    log_file: str | None = None


def setup_logging(config: LogConfig | None = None) -> None:
    """Configure the root logger, on stdout or in ``config.log_file``."""
    if config is None:
        config = LogConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stdout)

    logging.basicConfig(
        level=config.level.upper(),
        format=config.format,
        datefmt=config.date_format,
        handlers=[handler],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)
        level: Explicit level, overrides the LOG_LEVEL environment variable

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return logger
