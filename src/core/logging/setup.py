"""Logging setup for step processes."""

import logging
import sys
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.logging.context import set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_LOG_DIR = Path("logs")
DEFAULT_BACKUP_COUNT = 7

# HTTP client and cache chatter drowns out step logs at DEBUG
NOISY_LOGGERS = [
    "aiohttp",
    "aiohttp.access",
    "redis",
    "asyncio",
]


def get_log_file_path(log_dir: Path, name: str) -> Path:
    """
    Build log file path with a date subfolder.

    Structure: {log_dir}/{YYYY-MM-DD}/{name}_{HHMM}.log
    """
    now = datetime.now()
    return log_dir / now.strftime("%Y-%m-%d") / f"{name}_{now.strftime('%H%M')}.log"


def setup_logging(
    name: str = "marketo",
    step: str | None = None,
    level: str | int = logging.INFO,
    log_dir: Path | None = None,
    json_format: bool = True,
    log_to_stdout: bool = False,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> logging.Logger:
    """
    Configure the root logger for a step process.

    The console always gets human readable lines at ``level``. Unless
    ``log_to_stdout`` is set, a midnight-rotated file under ``log_dir``
    also receives everything from DEBUG up, as JSON by default.

    Args:
        name: Logger name and log file prefix
        step: Step name to seed the logging context with
        level: Console level, as a name ("INFO") or a logging constant
        log_dir: Directory for log files (default: ./logs)
        json_format: Use JSONFormatter for the file handler
        log_to_stdout: Skip the file handler; the host captures stdout
        backup_count: Rotated files to keep

    Returns:
        The logger called ``name``
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    if step:
        set_log_context(step=step)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ConsoleFormatter())
    root_logger.addHandler(console_handler)

    log_file = None
    if not log_to_stdout:
        log_file = get_log_file_path(log_dir or DEFAULT_LOG_DIR, name)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = TimedRotatingFileHandler(
            log_file, when="midnight", backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        if json_format:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        root_logger.addHandler(file_handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    if log_file is None:
        logger.debug("Logging initialized: stdout-only mode")
    else:
        logger.debug(f"Logging initialized: file={log_file}, json={json_format}")
    return logger
