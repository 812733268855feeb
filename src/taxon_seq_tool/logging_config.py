"""Logging configuration and utilities."""

import logging
import logging.handlers
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

ROOT_LOGGER_NAME = 'taxon_seq_tool'

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
CONSOLE_FORMAT = '%(levelname)s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level name on a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None,
                 use_colors: bool = True, stream=None):
        super().__init__(fmt, datefmt)
        stream = stream or sys.stderr
        self.use_colors = use_colors and hasattr(stream, 'isatty') and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not self.use_colors or color is None:
            return super().format(record)

        levelname = record.levelname
        record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class ProgressLogger:
    """Narrates progress through a batch of taxa."""

    def __init__(self, logger: logging.Logger, total: int,
                 operation: str = "Processing", level: int = logging.INFO):
        """
        Initialize progress logger.

        Args:
            logger: Logger instance to use
            total: Number of taxa in the batch
            operation: Prefix for every progress line
            level: Level progress lines are emitted at
        """
        self.logger = logger
        self.total = total
        self.operation = operation
        self.level = level
        self.processed = 0
        self.failed = 0
        self.started = time.monotonic()

    def _eta(self) -> str:
        elapsed = time.monotonic() - self.started
        if not self.processed or elapsed <= 0 or self.processed >= self.total:
            return ""
        remaining = (self.total - self.processed) * elapsed / self.processed
        return f", ETA: {int(remaining)}s"

    def update(self, success: bool = True, item: Optional[str] = None):
        """Record one finished taxon."""
        self.processed += 1
        if not success:
            self.failed += 1

        percent = 100.0 * self.processed / self.total if self.total else 100.0
        position = f"[{self.processed}/{self.total} ({percent:.1f}%){self._eta()}]"

        if item is None:
            self.logger.log(self.level, f"{self.operation}: {position} - {self.failed} failed")
        else:
            mark = "✓" if success else "✗"
            self.logger.log(self.level, f"{self.operation}: {mark} {item} {position}")

    def complete(self):
        """Log the batch summary."""
        elapsed = time.monotonic() - self.started
        succeeded = self.processed - self.failed
        self.logger.log(
            self.level,
            f"{self.operation} complete: {succeeded}/{self.processed} taxa succeeded in {elapsed:.1f}s"
        )


def _file_handler(log_dir: str, log_file: Optional[str], level: int,
                  max_bytes: int, backup_count: int) -> logging.Handler:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / (log_file or f"taxon_seq_{datetime.now():%Y%m%d}.log")

    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: str = ".taxon_seq_logs",
    file_logging: bool = True,
    console: bool = True,
    colors: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
    quiet: bool = False
) -> Dict[str, logging.Logger]:
    """
    Setup logging for the command-line tool.

    Replaces any handlers already on the root logger, so it can be called
    once per run.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file name inside log_dir (dated name if None)
        log_dir: Directory for log files
        file_logging: Write a rotating log file
        console: Log to stderr
        colors: Colour level names when stderr is a terminal
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep
        quiet: Only errors reach the console

    Returns:
        Dictionary of the tool's main loggers
    """
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    if file_logging:
        root_logger.addHandler(_file_handler(log_dir, log_file, level, max_bytes, backup_count))

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.ERROR if quiet else level)
        console_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, use_colors=colors))
        root_logger.addHandler(console_handler)

    # Third-party chatter stays out of the run log
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    loggers = {
        'main': logging.getLogger(ROOT_LOGGER_NAME),
        'pipeline': get_logger('pipeline'),
        'eutils': get_logger('eutils'),
        'performance': get_logger('performance'),
    }
    loggers['main'].debug(f"Logging initialized - level {log_level}, file logging {file_logging}")

    return loggers


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the tool's namespace."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class LogTimer:
    """Context manager that logs how long a block took, at DEBUG."""

    def __init__(self, operation: str, logger: Optional[logging.Logger] = None):
        self.operation = operation
        self.logger = logger or get_logger('performance')
        self.elapsed = 0.0
        self._start = None

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - self._start
        outcome = "completed in" if exc_type is None else "failed after"
        self.logger.debug(f"{self.operation} {outcome} {self.elapsed:.2f}s")
