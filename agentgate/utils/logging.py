"""
Structured logging for AgentGate.

Built on structlog with:
- Human-readable console output for development
- Structured JSON output for production
- Request/session context tracking via contextvars
- Sensitive data filtering

Usage:
    from agentgate.utils.logging import get_logger

    logger = get_logger(__name__)
    logger.info("permission_requested", request_id=request_id, action=action)
"""

import logging
import os
import sys
from contextvars import ContextVar
from typing import TextIO

import structlog
from structlog.types import FilteringBoundLogger

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
session_id_var: ContextVar[str | None] = ContextVar("session_id", default=None)


SENSITIVE_KEYS = {
    "password",
    "api_key",
    "secret",
    "authorization",
    "apikey",
    "access_token",
    "refresh_token",
}


def filter_sensitive_data(
    logger: FilteringBoundLogger, method_name: str, event_dict: dict
) -> dict:
    """Filter out sensitive information from logs."""
    for key in list(event_dict.keys()):
        if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
            event_dict[key] = "***REDACTED***"
    return event_dict


def add_context(
    logger: FilteringBoundLogger, method_name: str, event_dict: dict
) -> dict:
    """Add request/session tracking context to log entries."""
    if request_id := request_id_var.get():
        event_dict.setdefault("request_id", request_id)
    if session_id := session_id_var.get():
        event_dict.setdefault("session_id", session_id)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    log_file: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Configure structlog with appropriate processors and renderers.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON logs suitable for production
        log_file: Optional file path to write logs to
        stream: Output stream (default: stdout). The permission proxy passes
            stderr because its stdout carries the MCP stdio protocol.
    """
    log_level = os.getenv("LOG_LEVEL", log_level).upper()
    json_logs = os.getenv("LOG_JSON", str(json_logs)).lower() in ("true", "1", "yes")

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, log_level),
        force=True,
    )

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, log_level))
        logging.getLogger().addHandler(file_handler)

    processors = [
        structlog.contextvars.merge_contextvars,
        add_context,
        filter_sensitive_data,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        processors.extend(
            [
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ]
        )
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=stream is None or stream.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "agentgate") -> FilteringBoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the module)
    """
    return structlog.get_logger(name)


def set_request_context(
    request_id: str | None = None,
    session_id: str | None = None,
) -> None:
    """
    Set request context for logging.

    The values are included in every log entry emitted within the same
    async task or thread.
    """
    if request_id:
        request_id_var.set(request_id)
    if session_id:
        session_id_var.set(session_id)


def clear_request_context() -> None:
    """Clear request context."""
    request_id_var.set(None)
    session_id_var.set(None)


configure_logging()

logger = get_logger("agentgate")


__all__ = [
    "get_logger",
    "configure_logging",
    "set_request_context",
    "clear_request_context",
    "logger",
]
