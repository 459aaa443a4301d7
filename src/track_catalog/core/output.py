"""
Unified output system using Loguru.
Routes user-facing messages to the log file and to stdout for the CLI.
"""

import sys
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import LoggingConfig, get_data_dir

# Set when the web backend owns the process; suppresses stdout echo
_quiet_mode = False
_quiet_mode_lock = threading.Lock()


def get_log_file_path() -> Path:
    """Get the path to the default log file."""
    return get_data_dir() / "track-catalog.log"


def setup_loguru(
    log_file: Optional[Path] = None,
    level: str = "INFO",
    max_file_size_mb: int = 10,
    backup_count: int = 5,
    console_output: bool = False,
) -> Path:
    """
    Configure loguru with a rotating file sink and optional stderr sink.

    Args:
        log_file: Path to log file (default: data dir / track-catalog.log)
        level: Minimum level for logging (DEBUG, INFO, WARNING, ERROR)
        max_file_size_mb: Rotate the log file after this many megabytes
        backup_count: Number of rotated files to keep
        console_output: Also log to stderr

    Returns:
        The log file path in use
    """
    log_path = log_file if log_file else get_log_file_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_path,
        rotation=f"{max_file_size_mb} MB",
        retention=backup_count,
        level=level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,  # Synchronous writes (thread-safe but blocking)
    )

    if console_output:
        logger.add(sys.stderr, level=level.upper(), format="{level}: {message}")

    logger.info(f"Loguru initialized: {log_path} (level={level})")
    return log_path


def setup_from_config(config: LoggingConfig) -> Path:
    """Configure loguru from the [logging] config section."""
    return setup_loguru(
        log_file=Path(config.log_file).expanduser() if config.log_file else None,
        level=config.level,
        max_file_size_mb=config.max_file_size_mb,
        backup_count=config.backup_count,
        console_output=config.console_output,
    )


def set_quiet_mode(quiet: bool) -> None:
    """Enable or disable stdout echo of log() messages."""
    global _quiet_mode
    with _quiet_mode_lock:
        _quiet_mode = quiet


def log(message: str, level: str = "info") -> None:
    """
    Unified logging: writes to file AND prints for the CLI.

    Use this instead of print() for user-facing messages that should also be logged.

    Args:
        message: User-facing message
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level)
    log_func(message)

    with _quiet_mode_lock:
        if not _quiet_mode and level != "debug":
            print(message)
