"""Logging setup and log-file housekeeping.

Log files are written to `vpm-logs-<timestamp>.log` under the logs directory
and rotated at 5 MB. Old files (base and rotated) are removed by
cleanup_old_logs().
"""

import logging
import os
import time
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGS_DIR_ENV_VAR = "VPM_LOGS_DIR"
LOG_FILE_PREFIX = "vpm-logs-"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def get_logs_dir() -> Path:
    """Logs directory: $VPM_LOGS_DIR, else ~/.daydream-vpm/logs."""
    if custom := os.environ.get(LOGS_DIR_ENV_VAR):
        return Path(custom).expanduser()
    return Path.home() / ".daydream-vpm" / "logs"


def get_most_recent_log_file() -> Path | None:
    """Return the newest base .log file (by filename timestamp), or None."""
    logs_dir = get_logs_dir()
    if not logs_dir.exists():
        return None

    log_files = sorted(logs_dir.glob(f"{LOG_FILE_PREFIX}*.log"))
    if not log_files:
        return None
    return log_files[-1]


def cleanup_old_logs(max_age_days: int = 1) -> None:
    """Delete log files (including rotated .log.N) older than max_age_days."""
    logs_dir = get_logs_dir()
    if not logs_dir.exists():
        return

    cutoff = time.time() - max_age_days * 24 * 60 * 60
    deleted = 0
    for path in logs_dir.glob(f"{LOG_FILE_PREFIX}*.log*"):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                deleted += 1
        except OSError as e:
            logger.warning(f"Failed to delete old log file {path}: {e}")

    if deleted:
        logger.info(
            f"Cleaned up {deleted} old log file(s) older than {max_age_days} day(s)"
        )


def configure_logging(verbose: bool = False, log_to_file: bool = True) -> Path | None:
    """Configure process logging.

    Root stays at WARNING so third-party libraries are quiet; `vpm` loggers
    log at INFO (DEBUG when verbose) to the console and the rotating file.

    Returns:
        Path of the log file, or None when file logging is disabled
    """
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(
            handler, RotatingFileHandler
        ):
            handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    log_file = None
    if log_to_file:
        logs_dir = get_logs_dir()
        logs_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        log_file = logs_dir / f"{LOG_FILE_PREFIX}{timestamp}.log"

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5 MB per file
            backupCount=5,
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(file_handler)

    logging.getLogger("vpm").setLevel(logging.DEBUG if verbose else logging.INFO)

    if verbose:
        logging.getLogger("aiohttp").setLevel(logging.INFO)

    return log_file
