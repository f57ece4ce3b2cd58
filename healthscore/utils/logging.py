"""
Structured Logging Configuration

One line per record: ``[timestamp] LEVEL [logger] (metric) message``.
Records may carry a ``metric_id`` through ``extra``; the audit recorder
uses it so per-biomarker decisions can be grepped by id.
"""
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

# Marks handlers installed here, so repeated setup replaces only its own.
_HANDLER_TAG = "_healthscore_handler"


class StructuredFormatter(logging.Formatter):
    """Level-colored console format; plain when ``colored`` is False."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, colored: bool = True):
        super().__init__()
        self.colored = colored

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        metric_id = getattr(record, "metric_id", None)
        metric = f"({metric_id}) " if metric_id else ""

        line = (
            f"[{timestamp}] {record.levelname:8} [{record.name}] "
            f"{metric}{record.getMessage()}"
        )
        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        if not self.colored:
            return line
        return f"{self.COLORS.get(record.levelname, '')}{line}{self.RESET}"


def _install(root: logging.Logger, handler: logging.Handler, colored: bool) -> None:
    handler.setFormatter(StructuredFormatter(colored=colored))
    setattr(handler, _HANDLER_TAG, True)
    root.addHandler(handler)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure logging for the scoring service.

    Args:
        level: DEBUG shows every audit decision; INFO one line per score
        log_file: Optional file path; written without color codes
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root_logger.removeHandler(handler)
            handler.close()

    _install(root_logger, logging.StreamHandler(sys.stdout), colored=True)
    if log_file:
        _install(root_logger, logging.FileHandler(log_file), colored=False)


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass ``__name__``."""
    return logging.getLogger(name)
