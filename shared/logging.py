"""
Shared logging configuration for the cached serializer.
"""

import sys
import structlog
import logging
from typing import Any, Dict, Optional
from contextvars import ContextVar

from shared.config import get_settings

# Context variables bound while a subject is being serialized
serializer_var: ContextVar[Optional[str]] = ContextVar('serializer', default=None)
subject_id_var: ContextVar[Optional[str]] = ContextVar('subject_id', default=None)


def configure_logging(library_name: str = "cached_serializer", log_level: Optional[str] = None) -> None:
    """Configure structured logging for the library and its host.

    ``log_level`` defaults to ``CacheSettings.log_level``.
    """
    log_level = log_level or get_settings().log_level

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
            add_library_context,
            add_serialization_context,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )
    logging.getLogger(library_name).setLevel(getattr(logging, log_level.upper()))


def add_library_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add the component name (e.g. ``invalidation``) to log events."""
    logger_name = event_dict.get("logger", "")
    if "." in logger_name:
        event_dict["component"] = logger_name.split(".")[1]

    return event_dict


def add_serialization_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add the serializer and subject currently being resolved."""
    serializer = serializer_var.get()
    if serializer:
        event_dict.setdefault("serializer", serializer)

    subject_id = subject_id_var.get()
    if subject_id:
        event_dict.setdefault("subject_id", subject_id)

    return event_dict


def set_serialization_context(serializer: Optional[str], subject_id: Optional[Any] = None):
    """Bind serializer context; returns tokens for ``reset_serialization_context``."""
    return (
        serializer_var.set(serializer),
        subject_id_var.set(None if subject_id is None else str(subject_id)),
    )


def reset_serialization_context(tokens) -> None:
    """Restore the context that was active before ``set_serialization_context``."""
    serializer_token, subject_token = tokens
    serializer_var.reset(serializer_token)
    subject_id_var.reset(subject_token)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
