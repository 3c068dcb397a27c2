"""Logging configuration."""

import logging
import json
import re
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from connector_proxy.core.config import get_settings


# Token shapes that must never reach a log sink
SECRET_PATTERNS = [
    re.compile(r"(Bearer|Bot) [A-Za-z0-9._~+/=-]{12,}"),
    re.compile(r"xox[abposr]-[A-Za-z0-9-]+"),
    re.compile(r"\b(secret|ntn)_[A-Za-z0-9]+"),
    re.compile(r"(client_secret|access_token|refresh_token)=[^&\s]+"),
]

RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "message", "asctime",
}


def redact(text: str) -> str:
    """Mask credential-looking substrings."""
    for pattern in SECRET_PATTERNS:
        text = pattern.sub(_mask, text)
    return text


def _mask(match: re.Match) -> str:
    value = match.group(0)
    for separator in (" ", "="):
        if separator in value:
            prefix = value.split(separator, 1)[0]
            return f"{prefix}{separator}[REDACTED]"
    return "[REDACTED]"


class SecretRedactionFilter(logging.Filter):
    """Scrub credentials from log records before they are formatted."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact(record.getMessage())
        record.args = None
        return True


class RedactingFormatter(logging.Formatter):
    """Plain-text formatter that also scrubs tracebacks."""

    def formatException(self, ei) -> str:
        return redact(super().formatException(ei))


class JSONFormatter(logging.Formatter):
    """One JSON object per record, tagged with service and environment."""

    def __init__(self, service: Optional[str] = None, environment: Optional[str] = None):
        super().__init__()
        settings = get_settings()
        self.service = service or settings.service_name
        self.environment = environment or settings.environment

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service,
            "environment": self.environment,
        }
        if record.exc_info:
            log_data["exception"] = redact(self.formatException(record.exc_info))

        # Anything passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in RESERVED_ATTRS:
                log_data[key] = redact(value) if isinstance(value, str) else value
        return json.dumps(log_data, default=str)


TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Loggers that follow the service level vs. ones held at WARNING
SERVICE_LOGGERS = ("uvicorn", "fastapi", "connector_proxy")
QUIET_LOGGERS = ("httpx", "httpcore", "pymongo")


def setup_logging():
    """Route everything through one redacting stdout handler."""
    settings = get_settings()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(SecretRedactionFilter())
    handler.setFormatter(
        JSONFormatter() if settings.log_format == "json" else RedactingFormatter(TEXT_FORMAT)
    )

    logging.root.handlers = [handler]
    logging.root.setLevel(settings.log_level)

    for name in SERVICE_LOGGERS:
        logging.getLogger(name).setLevel(settings.log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
