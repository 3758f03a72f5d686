"""
Logging configuration: console output plus a rolling log file
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from mudhumeni_core.config.settings import (
    LOG_FILE, LOG_FORMAT, LOG_LEVEL, LOG_MAX_BYTES, LOG_BACKUP_COUNT
)

_HANDLER_MARKER = '_mudhumeni_handler'


def configure_logging(level: Union[int, str] = LOG_LEVEL,
                      log_file: Optional[Path] = LOG_FILE) -> logging.Logger:
    """
    Attach stdout and rotating-file handlers to the root logger.
    Safe to call repeatedly; handlers are only added once.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if any(getattr(h, _HANDLER_MARKER, False) for h in root.handlers):
        return root

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    setattr(console, _HANDLER_MARKER, True)
    root.addHandler(console)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, mode='a', maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT, encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARKER, True)
        root.addHandler(file_handler)

    return root
