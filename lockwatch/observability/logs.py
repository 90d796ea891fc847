"""
Logging setup for the sync engine.
Console logging always; optional daily-rotated file.
"""

import os
import logging
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure root logging and, when a file is given, daily rotation."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    if log_file:
        setup_log_rotation(log_file)


def setup_log_rotation(log_file: str = ".run/lockwatch.log") -> Optional[TimedRotatingFileHandler]:
    """Attach a midnight-rotating file handler to the root logger (keep 7 days)."""
    try:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)

        handler = TimedRotatingFileHandler(
            filename=log_file,
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        root_logger = logging.getLogger()
        root_logger.addHandler(handler)

        logger.info(f"Log rotation configured for {log_file} (daily, keep 7 days)")
        return handler

    except OSError as e:
        logger.error(f"Failed to setup log rotation: {e}")
        return None
