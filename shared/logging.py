"""
Shared logging configuration for the tagged cache layer.
"""

import sys
import structlog
import logging
import uuid
import time
from typing import Any, Dict, List, Optional
from contextvars import ContextVar

# Context variable for correlation IDs
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)

_service_name: Optional[str] = None
_handlers: List[logging.Handler] = []


def configure_logging(service_name: str, log_level: str = "info", log_file: Optional[str] = None) -> None:
    """Configure structured logging for a service.

    Records go to stdout and, when ``log_file`` is given, are appended to that
    file as they are emitted. Call :func:`shutdown_logging` on shutdown to
    flush and close the handlers.
    """
    global _service_name
    _service_name = service_name

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            add_correlation_context,
            add_timestamp,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    shutdown_logging()

    stream_handler = logging.StreamHandler(sys.stdout)
    _handlers.append(stream_handler)
    if log_file:
        _handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    root_logger = logging.getLogger()
    for handler in _handlers:
        handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))


def shutdown_logging() -> None:
    """Flush and detach the handlers installed by :func:`configure_logging`."""
    root_logger = logging.getLogger()
    while _handlers:
        handler = _handlers.pop()
        handler.flush()
        root_logger.removeHandler(handler)
        handler.close()


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add service context to log events."""
    if _service_name:
        event_dict["service"] = _service_name
        return event_dict

    # Fall back to the first component of the logger name
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict["service"] = logger_name.split(".")[0]

    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add correlation context to log events."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id

    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add a high-precision epoch timestamp next to the ISO one."""
    event_dict["epoch"] = time.time()
    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set request ID in context."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def clear_context():
    """Clear all context variables."""
    request_id_var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
