"""
Structured logging for the jobs monitor.

Provides consistent logging with:
- JSON output for production
- Human-readable output for development
- A broadcast sink that mirrors log lines to connected clients

Every component logs under the ``jobs_monitor`` namespace and receives its
logger by injection, so a single handler on the namespace is enough to
fan log output out to the event channel.
"""
import logging
import json
import sys
import threading
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional
from pathlib import Path


ROOT_LOGGER_NAME = "jobs_monitor"
ERROR_PREFIX = "ERROR: "


@dataclass
class StructuredLogEntry:
    """Structured log entry."""
    timestamp: str
    level: str
    message: str
    component: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Convert to JSON string."""
        data = {k: v for k, v in asdict(self).items() if v is not None}
        if not data.get('extra'):
            data.pop('extra', None)
        return json.dumps(data, ensure_ascii=False)

    def to_human(self) -> str:
        """Convert to human-readable string."""
        parts = [
            f"[{self.timestamp}]",
            f"[{self.level}]",
        ]

        if self.component:
            parts.append(f"[{self.component}]")

        parts.append(self.message)

        if self.error:
            parts.append(f"ERROR: {self.error}")

        return " ".join(parts)


def _component_of(record: logging.LogRecord) -> Optional[str]:
    prefix = ROOT_LOGGER_NAME + "."
    if record.name.startswith(prefix):
        return record.name[len(prefix):]
    return None


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        entry = StructuredLogEntry(
            timestamp=datetime.utcnow().isoformat(),
            level=record.levelname,
            message=record.getMessage(),
            component=_component_of(record),
            error=str(record.exc_info[1]) if record.exc_info else None,
            error_type=record.exc_info[0].__name__ if record.exc_info and record.exc_info[0] else None,
            extra=getattr(record, 'extra', {}),
        )
        return entry.to_json()


class HumanFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        entry = StructuredLogEntry(
            timestamp=datetime.now().strftime("%H:%M:%S"),
            level=record.levelname,
            message=record.getMessage(),
            component=_component_of(record),
            error=str(record.exc_info[1]) if record.exc_info else None,
        )
        return entry.to_human()


class BroadcastLogHandler(logging.Handler):
    """
    Mirrors log records to a sink (the event broadcast channel).

    Records from excluded loggers, or logged with ``extra={"broadcast": False}``,
    stay local. Nested records emitted while the sink runs are dropped.
    """

    def __init__(
        self,
        sink: Callable[[str], Any],
        exclude: Iterable[str] = (),
        level: int = logging.INFO,
    ):
        super().__init__(level=level)
        self._sink = sink
        self._exclude = tuple(exclude)
        self._local = threading.local()

    def _is_excluded(self, record: logging.LogRecord) -> bool:
        if getattr(record, "broadcast", True) is False:
            return True
        return any(
            record.name == name or record.name.startswith(name + ".")
            for name in self._exclude
        )

    def format_message(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno >= logging.ERROR:
            return f"{ERROR_PREFIX}{message}"
        return message

    def emit(self, record: logging.LogRecord) -> None:
        if self._is_excluded(record):
            return
        if getattr(self._local, "emitting", False):
            return
        self._local.emitting = True
        try:
            self._sink(self.format_message(record))
        except Exception:
            self.handleError(record)
        finally:
            self._local.emitting = False


def get_logger(component: str) -> logging.Logger:
    """Logger for a component under the jobs_monitor namespace."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    console: bool = True,
) -> logging.Logger:
    """
    Configure console (and optional file) output for the namespace.

    The level applies to the console and file handlers only; the namespace
    logger stays at INFO or below so broadcast sinks keep receiving every
    line. Broadcast handlers already attached are kept. Pass console=False
    when stdout belongs to a full-screen UI.
    """
    output_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(min(output_level, logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        if not isinstance(handler, BroadcastLogHandler):
            logger.removeHandler(handler)
            handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(output_level)
        if json_output:
            console_handler.setFormatter(JSONFormatter())
        else:
            console_handler.setFormatter(HumanFormatter())
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(output_level)
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)

    return logger


def attach_broadcast_sink(
    sink: Callable[[str], Any],
    exclude: Iterable[str] = (),
) -> BroadcastLogHandler:
    """Register a broadcast sink on the namespace logger."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)
    handler = BroadcastLogHandler(sink, exclude=exclude)
    logger.addHandler(handler)
    return handler


def detach_broadcast_sink(handler: BroadcastLogHandler) -> None:
    """Remove a sink registered with attach_broadcast_sink()."""
    logging.getLogger(ROOT_LOGGER_NAME).removeHandler(handler)
    handler.close()
