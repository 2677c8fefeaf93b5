"""
Logging setup for harvest runs.

One root configuration per process: a stdout stream plus a dated file
under the log directory. Modules only ever call get_logger(__name__).
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional


DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers capped at WARNING unless we run at DEBUG
NOISY_LOGGERS = ("asyncio", "urllib3")


def dated_log_path(log_dir: Optional[Path] = None, prefix: str = "harvest") -> Path:
    """
    Example:
        >>> dated_log_path(Path("logs")).name  # doctest: +SKIP
        'harvest_20261017.log'
    """
    stamp = datetime.now().strftime("%Y%m%d")
    return Path(log_dir or "logs") / f"{prefix}_{stamp}.log"


def setup_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[str] = None,
    console: bool = True,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure the root logger for a run.

    Calling it again replaces the previous handlers instead of stacking them.

    Args:
        level: Level name; unknown names fall back to INFO
        log_file: Explicit log file (default: <log_dir>/harvest_YYYYMMDD.log)
        console: Also log to stdout
        log_dir: Directory for the dated file (default: logs)

    Returns:
        Configured root logger

    Example:
        >>> logger = setup_logging(level="DEBUG", console=False)
        >>> logger.info("Harvest started")
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    log_path = Path(log_file) if log_file else dated_log_path(log_dir)
    log_path.parent.mkdir(exist_ok=True, parents=True)

    handlers: List[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if console:
        handlers.insert(0, logging.StreamHandler(sys.stdout))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    if numeric_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialized - Level: {logging.getLevelName(numeric_level)}, File: {log_path}")
    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def init_harvest_logging(verbose: bool = False, log_dir: Optional[Path] = None) -> logging.Logger:
    """DEBUG when verbose, INFO otherwise."""
    return setup_logging(level="DEBUG" if verbose else "INFO", log_dir=log_dir)
