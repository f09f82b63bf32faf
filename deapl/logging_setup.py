# deapl/logging_setup.py
"""
Logging configuration for applications and scripts using deapl.

deapl itself only creates module loggers; call setup_logging() from the
application entry point to see them.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

# Third-party loggers that are noisy at DEBUG
_QUIET_LOGGERS = ('asyncio',)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    file_level: int = logging.DEBUG,
):
    """Configure logging to stderr and optionally to a file.

    Args:
        level: Console log level
        log_file: Optional log file path (parent directories are created)
        file_level: File log level

    Returns:
        tuple: (console_handler, file_handler) to keep references alive
    """
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))

    file_handler = None
    if log_file is not None:
        log_file_path = Path(log_file).expanduser()
        try:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file_path, mode='a', encoding='utf-8')
            file_handler.setLevel(file_level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        except OSError as e:
            # Fall back to console-only logging
            print(f"[WARNING] Failed to create log file {log_file_path}: {e}", file=sys.stderr)
            file_handler = None

    deapl_logger = logging.getLogger('deapl')
    deapl_logger.setLevel(min(level, file_level) if file_handler else level)
    # Remove handlers from a previous call so repeated setup does not duplicate output
    for handler in deapl_logger.handlers[:]:
        deapl_logger.removeHandler(handler)
        handler.close()
    deapl_logger.addHandler(console_handler)
    if file_handler:
        deapl_logger.addHandler(file_handler)
    deapl_logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return console_handler, file_handler
