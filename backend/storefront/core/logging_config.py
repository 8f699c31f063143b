"""
Storefront logging

Each log line carries the request id and the catalog mode it was written
under (online/offline/-), so a line can be traced to the request and to
whether the data came from the remote catalog or the local replica.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Callable, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Gateway mode getter, bound for the lifetime of the app
_mode_source: Optional[Callable[[], bool]] = None

# Keys passed through ``extra=`` that the JSON output keeps
STRUCTURED_FIELDS = ("cache_key", "error_code", "status_code")

TEXT_FORMAT = "%(asctime)s [%(levelname)8s] [%(request_id)s %(catalog_mode)s] %(name)s: %(message)s"


def set_request_id(request_id: Optional[str]) -> None:
    request_id_var.set(request_id)


def bind_catalog_mode(is_offline: Optional[Callable[[], bool]]) -> None:
    """Register the gateway's ``is_offline``; pass None on shutdown."""
    global _mode_source
    _mode_source = is_offline


def current_catalog_mode() -> str:
    if _mode_source is None:
        return "-"
    return "offline" if _mode_source() else "online"


class StorefrontContextFilter(logging.Filter):
    """Stamps request_id and catalog_mode on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        record.catalog_mode = current_catalog_mode()
        return True


class JsonFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "catalog_mode": getattr(record, "catalog_mode", "-"),
        }
        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                entry[field] = getattr(record, field)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", log_format: str = "text") -> None:
    """
    Install one stdout handler on the root logger.

    Args:
        level: Log level name; unknown names fall back to INFO
        log_format: "json" for structured lines, anything else for text
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(StorefrontContextFilter())
    if log_format.lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    log_level = logging.getLevelName(level.upper())
    root_logger.setLevel(log_level if isinstance(log_level, int) else logging.INFO)

    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level}, format={log_format}")
