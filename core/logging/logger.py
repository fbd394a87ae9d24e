"""
Centralized logging configuration for the feed core.

Uses rotating file handler with logs stored in logs/ directory.
Includes colored console output for debug mode.
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


_VERBOSE: bool = False
# Base directory for logs. Defaults to the project root; setup_logging() can
# be pointed elsewhere so get_log_dir() always matches the active handler.
_BASE_DIR: Path = Path(__file__).parent.parent.parent

_env_verbose = os.getenv("FEEDCORE_VERBOSE")
if _env_verbose is not None:
    _VERBOSE = str(_env_verbose).strip().lower() in ("1", "true", "on", "yes")


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors to console output."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',       # Cyan
        'INFO': '\033[32m',        # Green
        'WARNING': '\033[33m',     # Yellow
        'ERROR': '\033[31m',       # Red
        'CRITICAL': '\033[35m',    # Magenta
    }
    NETWORK_COLOR = '\033[38;5;39m'  # Blue for [NET] transport lines
    RESET = '\033[0m'
    BOLD = '\033[1m'

    def format(self, record):
        original_levelname = record.levelname
        original_msg = record.msg

        color = None
        if record.levelno < logging.WARNING and str(record.msg).startswith('[NET]'):
            color = self.NETWORK_COLOR
        elif record.levelname in self.COLORS:
            color = self.COLORS[record.levelname]

        if color is None:
            return super().format(record)

        record.levelname = f"{self.BOLD}{color}{record.levelname}{self.RESET}"
        try:
            message = super().format(record)
        finally:
            record.levelname = original_levelname
            record.msg = original_msg
        return f"{color}{message}{self.RESET}"


def get_log_dir() -> Path:
    """Return the directory used for log files."""
    return _BASE_DIR / "logs"


def setup_logging(debug: bool = False, verbose: bool = False,
                  base_dir: Optional[Path] = None) -> None:
    """
    Configure application logging with file rotation.

    Args:
        debug: If True, set log level to DEBUG and enable console output.
        verbose: Enables additional high-volume debug logs (per-request
            transport details, cache hits). Verbose implies debug.
        base_dir: Optional directory under which logs/ is created.
    """
    global _VERBOSE, _BASE_DIR

    debug_enabled = debug or verbose
    if base_dir is not None:
        _BASE_DIR = Path(base_dir)

    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "feedcore.log"

    level = logging.DEBUG if debug_enabled else logging.INFO

    formatter = logging.Formatter(
        '%(asctime)s - %(name)-30s - %(levelname)-8s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File handler with rotation (1MB max, keep 5 backups)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=1 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)

    if debug_enabled:
        console_handler = logging.StreamHandler(sys.stdout)
        console_fmt = '%(asctime)s - %(name)-30s - %(levelname)-8s - %(message)s'
        if sys.stdout.isatty():
            console_handler.setFormatter(ColoredFormatter(console_fmt, datefmt='%H:%M:%S'))
        else:
            console_handler.setFormatter(logging.Formatter(console_fmt, datefmt='%H:%M:%S'))
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)

    # Connection pool chatter only shows up when verbose logging is requested.
    noisy_level = logging.DEBUG if verbose else logging.INFO
    for name in ("urllib3", "urllib3.connectionpool"):
        logging.getLogger(name).setLevel(noisy_level)

    _VERBOSE = bool(verbose)

    root_logger.info("=" * 60)
    root_logger.info(
        "Feed core logging initialized (debug=%s, verbose=%s)",
        debug_enabled,
        _VERBOSE,
    )
    root_logger.info("=" * 60)


_SHORT_NAME_OVERRIDES = {
    "core.threading.manager": "threading.manager",
    "core.threading.operation": "threading.operation",
    "core.network.network_service": "network.service",
    "engine.home_view_model": "engine.home_vm",
}


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with optional short-name overrides for noisy modules."""
    actual = _SHORT_NAME_OVERRIDES.get(name, name)
    return logging.getLogger(actual)


def is_verbose_logging() -> bool:
    """Return True when verbose debug logging is enabled globally."""
    return _VERBOSE
