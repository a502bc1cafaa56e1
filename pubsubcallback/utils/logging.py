"""
Structured logging configuration for the callback server.
"""

import logging
import sys
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for console output."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record):
        """Format log record with a colored level name."""
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']
        original_levelname = record.levelname
        record.levelname = f"{color}{record.levelname}{reset}"
        try:
            return super().format(record)
        finally:
            # Other handlers may format the same record
            record.levelname = original_levelname


def setup_logging(log_level: str = 'INFO', use_colors: bool = True) -> None:
    """
    Set up console logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_colors: Whether to use colored output when stdout is a terminal
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)

    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    if use_colors and sys.stdout.isatty():
        formatter = ColoredFormatter(log_format, datefmt='%Y-%m-%d %H:%M:%S')
    else:
        formatter = logging.Formatter(log_format, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Keep transport chatter out of the application log
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)
    logging.getLogger('waitress').setLevel(max(numeric_level, logging.INFO))

    logging.info(f"Logging initialized at level {log_level}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name (typically __name__)."""
    return logging.getLogger(name)


def log_websub_event(logger: logging.Logger, event_type: str, details: dict):
    """Log WebSub-related events with structured data."""
    extra = {'component': 'websub', 'event_type': event_type}
    logger.info(f"WebSub {event_type}: {details}", extra=extra)


def log_notification_processing(logger: logging.Logger, video_id: str, title: str, success: bool, error: Optional[str] = None):
    """Log the outcome of handing a notification to the consumer."""
    extra = {'component': 'notification', 'video_id': video_id}
    if success:
        logger.info(f"Dispatched notification: {title} ({video_id})", extra=extra)
    else:
        logger.error(f"Failed to dispatch notification: {title} ({video_id}) - {error}", extra=extra)
