"""
Logging configuration for codeask.

Console logging on stderr, an optional rotating log file, and optional JSON
output for machine consumption.
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Third-party loggers that are chatty at INFO (one line per HTTP request)
NOISY_LOGGERS = ("httpx", "openai", "sentence_transformers", "urllib3")


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    json_format: bool = False,
    max_log_size_mb: int = 10,
    log_backups: int = 3,
) -> None:
    """
    Configure application-wide logging for codeask.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a rotating log file
        json_format: Emit one JSON object per line instead of plain text
        max_log_size_mb: Size in MB at which the log file rotates
        log_backups: Number of rotated files to keep

    Example:
        setup_logging(level="DEBUG", log_file=Path(".codeask/codeask.log"))
    """
    numeric_level = getattr(logging, level.upper())

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                filename=str(log_file),
                maxBytes=max_log_size_mb * 1024 * 1024,
                backupCount=log_backups,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning(f"Failed to set up file logging: {e}. Using console only.")

    # Keep third-party request logs out of INFO output
    if numeric_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.debug(
        f"Logging initialized: level={level}, "
        f"file={log_file or 'disabled'}, "
        f"format={'JSON' if json_format else 'text'}"
    )
