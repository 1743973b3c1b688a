"""Logging setup for applications and the CLI."""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config import LoggingConfig

_RESERVED_ATTRS = frozenset(
    [
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
        "thread", "threadName", "processName", "process", "taskName",
        "exc_info", "exc_text", "stack_info", "message", "asctime",
    ]
)


class StructuredFormatter(logging.Formatter):
    """Formats records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ColoredFormatter(logging.Formatter):
    """Colored console formatter."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        return f"{color}{super().format(record)}{self.COLORS['RESET']}"


def setup_logging(config: Optional[LoggingConfig] = None, level: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args:
        config: Logging configuration (defaults apply if omitted)
        level: Level overriding ``config.level``
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or config.level).upper(), logging.INFO))
    root_logger.handlers.clear()

    if config.console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        if sys.stderr.isatty():
            console_handler.setFormatter(ColoredFormatter(config.format))
        else:
            console_handler.setFormatter(logging.Formatter(config.format))
        root_logger.addHandler(console_handler)

    if config.file_path:
        log_file = Path(config.file_path)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    # Reduce noise from the HTTP stack
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
