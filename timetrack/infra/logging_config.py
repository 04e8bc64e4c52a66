"""Logging setup: rotating file in the data directory plus the console."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILENAME = "timetrack.log"


def configure_logging(log_dir: Optional[Path] = None, level: str = "INFO") -> logging.Logger:
    """
    Configure the `timetrack` logger tree.

    Safe to call more than once; handlers are only added the first time.

    Args:
        log_dir: Directory for timetrack.log, console only if None
        level: Logging level name
    """
    root = logging.getLogger("timetrack")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if getattr(root, "_timetrack_configured", False):
        return root

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_dir / LOG_FILENAME,
                maxBytes=1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as e:
            root.warning(f"File logging disabled, could not open {log_dir}: {e}")

    root._timetrack_configured = True
    return root
