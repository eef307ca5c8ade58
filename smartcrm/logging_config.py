"""
SmartCRM logging setup.

setup_logging() is called once by the API app; it reads LOG_LEVEL, LOG_FORMAT
and LOG_FILE from smartcrm.config unless overridden. Engines log through
"smartcrm.*" loggers and attach the CRM context they know about:

    logger.info("SDR %s drafted", preset, extra={"contact_id": "c_1", "agent_name": preset})

Context keys (CONTEXT_FIELDS) appear as top-level keys in "json" output and as
a trailing [key=value ...] block in "text" output.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from smartcrm import config

CONTEXT_FIELDS = ("contact_id", "request_id", "agent_name", "phase",
                  "detection_type", "duration_ms")


def record_context(record: logging.LogRecord) -> dict:
    """CRM context attached to a record through `extra=`."""
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(record_context(record))

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Console format; context extras are appended in brackets."""

    def __init__(self):
        super().__init__(fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                         datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        return line


_initialized = False


def setup_logging(level: str = None, fmt: str = None, log_file: str = None):
    """Install one console handler (plus an optional file handler) on the root logger.

    Only the first call has an effect.
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = (level or config.LOG_LEVEL).upper()
    fmt = fmt or config.LOG_FORMAT
    log_file = log_file or config.LOG_FILE

    formatter = JSONFormatter() if fmt == "json" else TextFormatter()
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    # Quiet uvicorn's per-request lines
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.getLogger("smartcrm").info("Logging configured: level=%s, format=%s%s",
                                       level, fmt, f", file={log_file}" if log_file else "")


def get_agent_logger(agent_name: str) -> logging.Logger:
    """Logger under smartcrm.agents for one engine or SDR preset."""
    return logging.getLogger(f"smartcrm.agents.{agent_name}")
