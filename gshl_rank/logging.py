"""Logging setup for training, ranking, and rollup runs.

Ranking code logs through loguru (``get_logger``); the data and aggregation
layers use the stdlib ``logging`` module, which ``setup_logging`` routes
into the same loguru sinks. Three sinks are configured:

- stderr, colorized, at the requested level
- ``gshl_rank_<date>.log``, JSON lines for every module
- ``rollups_<date>.log``, plain text for ``gshl_rank.aggregation`` only,
  one line per pipeline step with its SUCCESS/FAIL/WARN tag

SQLAlchemy's engine and pool loggers are held at WARNING so row-store
queries do not flood the rollup log at DEBUG.

Example:
    >>> from gshl_rank.logging import setup_logging, get_logger
    >>> setup_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.info("Trained {} model keys", 12)

Status Tags:
    >>> from gshl_rank.logging import SUCCESS, FAIL, WARN
    >>> logger.info(f"{SUCCESS} Week 4 rolled up")
    >>> logger.warning(f"{WARN} 3 stat lines could not be classified")
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

from loguru import logger

# ANSI status tags; rendered by loguru when colorize=True
SUCCESS = "\033[92m[SUCCESS]\033[0m"
FAIL = "\033[91m[FAIL]\033[0m"
WARN = "\033[93m[WARN]\033[0m"

ROLLUP_MODULE_PREFIX = "gshl_rank.aggregation"

QUIET_LOGGERS: tuple[str, ...] = ("sqlalchemy.engine", "sqlalchemy.pool")


class InterceptHandler(logging.Handler):
    """Forward stdlib ``logging`` records to loguru.

    The caller's frame is recovered so loguru's ``name`` is the module that
    issued the call, which is what the rollup sink filters on.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = sys._getframe(6), 6
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def is_rollup_record(record: dict[str, Any]) -> bool:
    """Whether a loguru record was emitted by the aggregation package."""
    return (record.get("name") or "").startswith(ROLLUP_MODULE_PREFIX)


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path = "logs",
    rotation: str = "1 day",
    retention: str = "30 days",
    serialize: bool = True,
    rollup_log: bool = True,
) -> None:
    """Configure console, JSON file, and rollup log sinks.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_dir: Directory for log files; created if missing.
        rotation: When to rotate log files (e.g., "1 day", "100 MB").
        retention: How long to keep old log files.
        serialize: Whether the main log file holds JSON lines.
        rollup_log: Whether to add the plain-text rollup log.
    """
    logger.remove()

    logger.add(
        sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_path / "gshl_rank_{time:YYYY-MM-DD}.log",
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
        rotation=rotation,
        retention=retention,
        serialize=serialize,
        enqueue=True,
    )

    if rollup_log:
        logger.add(
            log_path / "rollups_{time:YYYY-MM-DD}.log",
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
            filter=is_rollup_record,
            rotation=rotation,
            retention=retention,
            enqueue=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """Loguru logger bound with ``name`` (usually the caller's ``__name__``)."""
    return logger.bind(name=name)


__all__ = [
    "FAIL",
    "QUIET_LOGGERS",
    "SUCCESS",
    "WARN",
    "get_logger",
    "is_rollup_record",
    "logger",
    "setup_logging",
]
