"""
Structured logging for the Sleeper MCP Server.

One JSON object per line on stderr, optionally mirrored to a rotating file.
Context passed with ``extra={...}`` (cache category, upstream path, domain)
is copied into the entry so log pipelines can filter on it.
"""

import json
import logging
import logging.config
import sys
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, Optional

PACKAGE_LOGGER = __name__.split(".")[0]
DEFAULT_LOG_FILE = Path("logs") / "sleeper_mcp.log"

# LogRecord attributes that are not user-supplied context
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

# Chatty third-party loggers and the level they are capped at
_LIBRARY_LEVELS = {"httpx": "WARNING", "httpcore": "WARNING", "watchdog": "WARNING", "uvicorn": "INFO"}


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def __init__(self, service_name: str = "sleeper-mcp-server", version: str = "0.2.0"):
        super().__init__()
        self.service_name = service_name
        self.version = version

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "version": self.version,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = record.stack_info
        return json.dumps(entry, default=str)


def _file_handler(path: Path, level: str) -> Dict[str, Any]:
    path.parent.mkdir(parents=True, exist_ok=True)
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "structured",
        "filename": str(path),
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": 5,
        "encoding": "utf8",
    }


def setup_logging(
    log_level: str = "INFO",
    service_name: str = "sleeper-mcp-server",
    version: str = "0.2.0",
    enable_file_logging: bool = False,
    log_file_path: Optional[str] = None
) -> None:
    """
    Configure the package, library and root loggers.

    Args:
        log_level: Level for the ``sleeper_mcp`` loggers and the root logger
        service_name: Value of the ``service`` field in every entry
        version: Value of the ``version`` field in every entry
        enable_file_logging: Also write to a rotating file
        log_file_path: File to write (defaults to logs/sleeper_mcp.log)
    """
    level = log_level.upper()
    handlers: Dict[str, Dict[str, Any]] = {
        # stdout stays clean for the MCP transport
        "console": {"class": "logging.StreamHandler", "level": level, "formatter": "structured", "stream": sys.stderr},
    }
    if enable_file_logging:
        handlers["file"] = _file_handler(Path(log_file_path) if log_file_path else DEFAULT_LOG_FILE, level)
    names = list(handlers)

    loggers = {
        library: {"level": library_level, "handlers": names, "propagate": False}
        for library, library_level in _LIBRARY_LEVELS.items()
    }
    loggers[PACKAGE_LOGGER] = {"level": level, "handlers": names, "propagate": False}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {"()": StructuredFormatter, "service_name": service_name, "version": version},
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": level, "handlers": names},
    })


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (usually ``__name__``)."""
    return logging.getLogger(name)
