"""
Sukusuku - Logging
Stderr logging for the CLI and any embedding service.

Log calls attach run context through ``extra=``: the user, the storage
channel, the telemetry entry id and the actuator action. Both output formats
render whichever of these a record carries, so a skipped entry or a failed
command can be traced back to one user without parsing the message text.
"""

import json
import logging
import sys
from typing import Any, Dict

CONTEXT_FIELDS = ("user_id", "channel", "entry_id", "action")

# Third-party loggers that are only useful when debugging the device link
NOISY_LOGGERS = ("urllib3",)


def configure_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure root logging. Logs go to stderr so CLI output stays clean."""
    level_value = getattr(logging, str(level).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ContextFormatter())
    logging.basicConfig(level=level_value, handlers=[handler], force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level_value, logging.WARNING))


def context_of(record: logging.LogRecord) -> Dict[str, Any]:
    """Context fields set on the record, in CONTEXT_FIELDS order."""
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class ContextFormatter(logging.Formatter):
    """
    Pipe-separated text, with any context as trailing key=value pairs:

        2026-01-01T00:00:00 | WARNING | sukusuku.local_db | Skipping entry 3 ... | user_id=u1 channel=health entry_id=3
    """

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = context_of(record)
        if context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line; context fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        payload.update(context_of(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True, default=str)
