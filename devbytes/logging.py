"""Logging configuration for DevBytes sync."""

import json
import logging
import sys
from datetime import datetime, timezone

from devbytes.config import Settings, get_settings

# Libraries that log every request, job execution or SQL round trip at INFO
NOISY_LOGGERS = ("apscheduler", "httpx", "aiosqlite")

# Record attributes the work manager attaches through ``extra``
CONTEXT_FIELDS = ("work_name",)


class WorkContextFilter(logging.Filter):
    """Give every record a ``work_name`` so formatters can rely on it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "work_name"):
            record.work_name = None
        return True


class JsonFormatter(logging.Formatter):
    """JSON formatter for production logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single JSON object."""
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line format for development, tagged with the work name."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s%(work_tag)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        work_name = getattr(record, "work_name", None)
        record.work_tag = f" [{work_name}]" if work_name else ""
        return super().format(record)


def setup_logging(settings: Settings | None = None) -> None:
    """Configure logging based on environment.

    Records from the ``devbytes`` package are emitted at ``settings.log_level``;
    everything else stays at WARNING.
    """
    settings = settings or get_settings()
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(WorkContextFilter())

    if settings.env == "prod":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("devbytes").setLevel(settings.log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
