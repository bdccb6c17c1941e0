# logging_config.py

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from vision_loop.constants import LOG_DIR, LOG_FILE
from vision_loop.utils.file_utils import get_user_data_dir_for_app

FILE_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s"
CONSOLE_FORMAT = "[%(levelname)-7s] %(message)s"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3

# =============================================================================
# ANSI Color Codes
# =============================================================================
class LogColors:
    GREY = "\x1b[38;20m"
    GREEN = "\x1b[32;20m"
    YELLOW = "\x1b[33;20m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    RESET = "\x1b[0m"

LEVEL_COLORS = {
    logging.DEBUG: LogColors.GREY,
    logging.INFO: LogColors.GREY,
    logging.WARNING: LogColors.YELLOW,
    logging.ERROR: LogColors.RED,
    logging.CRITICAL: LogColors.BOLD_RED,
}

# Store outcomes stand out regardless of level: "ADDED: ..." / "FAILED: ..."
PREFIX_COLORS = {
    "ADDED:": LogColors.GREEN,
    "RELEASED:": LogColors.GREEN,
    "FAILED:": LogColors.RED,
}

# =============================================================================
# Custom Color Formatter
# =============================================================================
class ColorFormatter(logging.Formatter):
    """Wraps each console line in a color picked from its message prefix or level."""

    def __init__(self, fmt):
        super().__init__(fmt)
        self._formatters = {}

    def _formatter_for(self, color):
        if color not in self._formatters:
            self._formatters[color] = logging.Formatter(color + self._fmt + LogColors.RESET)
        return self._formatters[color]

    def format(self, record):
        message = record.getMessage()
        color = next(
            (c for prefix, c in PREFIX_COLORS.items() if message.startswith(prefix)),
            LEVEL_COLORS.get(record.levelno, LogColors.GREY),
        )
        return self._formatter_for(color).format(record)

# =============================================================================
# Main Setup Function
# =============================================================================
def _build_file_handler(log_dir):
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE),
        maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding='utf-8',
    )
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler

def setup_logging(log_dir=None, console_level=logging.INFO):
    """
    Sends the `vision_loop` loggers to a rotating file in the data directory
    and to a colored stderr stream. Safe to call more than once.
    """
    logging.getLogger('PIL').setLevel(logging.WARNING)

    app_logger = logging.getLogger("vision_loop")
    app_logger.setLevel(logging.DEBUG)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    try:
        app_logger.addHandler(_build_file_handler(log_dir or os.path.join(get_user_data_dir_for_app(), LOG_DIR)))
    except OSError as e:
        print(f"Error setting up file logger: {e}", file=sys.stderr)

    if sys.stderr:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(console_level)
        console_handler.setFormatter(ColorFormatter(CONSOLE_FORMAT))
        app_logger.addHandler(console_handler)

    # Kivy may attach handlers to the root logger; keep our lines out of them.
    app_logger.propagate = False
    app_logger.debug("Logging configured.")
