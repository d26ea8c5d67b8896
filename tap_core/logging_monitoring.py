"""
TAP Core Logging - Console and Structured Logging

This module configures logging for the CLI and the API server: a coloured
console format for people, a JSON-lines format for log collectors, and a
logger adapter that carries document context (document key, annotator
pair) and times long-running operations such as corpus loading and gold
generation.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import sys
import json
import time
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Any, Union, MutableMapping, Tuple
from datetime import datetime, timezone
from enum import Enum
from contextlib import contextmanager


CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
CONSOLE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# LogRecord attributes that are not user extras
_RECORD_FIELDS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class LogLevel(Enum):
    """Log levels"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def from_name(cls, name: Union[str, LogLevel, None], default: LogLevel = None) -> LogLevel:
        """Resolve a level from a (case-insensitive) name"""
        if isinstance(name, LogLevel):
            return name
        if name:
            try:
                return cls[str(name).strip().upper()]
            except KeyError:
                pass
        return default or cls.WARNING


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, extras included"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}:{record.lineno}",
        }

        for key, value in vars(record).items():
            if key not in _RECORD_FIELDS and not key.startswith("_"):
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Pipe-separated console lines, level coloured on a terminal"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: Optional[bool] = None):
        super().__init__(CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT)
        if use_colors is None:
            use_colors = sys.stderr.isatty()
        self.use_colors = use_colors

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if color:
            line = line.replace(record.levelname, f"{color}{record.levelname}{self.RESET}", 1)
        return line


def setup_logging(
    level: Union[str, LogLevel, None] = None,
    json_format: bool = False,
    log_file: Optional[Union[str, Path]] = None
) -> logging.Logger:
    """Configure the root logger for the CLI and the API server"""
    root = logging.getLogger()
    root.setLevel(LogLevel.from_name(level).value)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter: logging.Formatter = StructuredFormatter() if json_format else ConsoleFormatter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(
            StructuredFormatter() if json_format else logging.Formatter(CONSOLE_FORMAT)
        )
        root.addHandler(file_handler)

    return root


class PlatformLogger(logging.LoggerAdapter):
    """Logger adapter adding document context and operation timing"""

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(logging.getLogger(name), dict(context or {}))

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **context) -> PlatformLogger:
        """Child adapter with additional context, e.g. doc="chapter1" """
        merged = dict(self.extra)
        merged.update(context)
        return PlatformLogger(self.logger.name, merged)

    @contextmanager
    def timed(self, operation: str, level: LogLevel = LogLevel.INFO):
        """Log start, duration and failure of an operation"""
        start = time.perf_counter()
        self.debug(f"Starting: {operation}")

        try:
            yield
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.error(f"Failed: {operation} - {e}", extra={"duration_ms": round(elapsed_ms, 1)})
            raise

        elapsed_ms = (time.perf_counter() - start) * 1000
        self.log(level.value, f"Completed: {operation} ({elapsed_ms:.1f} ms)",
                 extra={"duration_ms": round(elapsed_ms, 1)})


_loggers: Dict[str, PlatformLogger] = {}
_loggers_lock = threading.Lock()


def get_logger(name: str) -> PlatformLogger:
    """Get the shared platform logger for a module"""
    with _loggers_lock:
        if name not in _loggers:
            _loggers[name] = PlatformLogger(name)
        return _loggers[name]
