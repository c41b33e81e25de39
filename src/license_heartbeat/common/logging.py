"""Structured JSON logging for the license heartbeat client.

Resource ids and the fingerprint passed through ``extra=`` become top-level
fields of the JSON line, so one run can be followed by grepping for its
process id.
"""

import logging
import json
import sys
from datetime import datetime, timezone

RESOURCE_FIELDS = ("license_id", "machine_id", "process_id", "fingerprint")


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines carrying licensing resource ids."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in RESOURCE_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def setup_logging(level: str = "INFO") -> None:
    """Send package logs to stderr as JSON lines, leaving stdout to the CLI."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger("license_heartbeat")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # Replace rather than append: run() may be invoked repeatedly in-process.
    root.handlers = [handler]
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"license_heartbeat.{name}")
