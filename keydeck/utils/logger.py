"""Structured logging utilities for KeyDeck.

All modules log through structlog with event-style names and keyword context:

    logger.info("api_key_created", key_id=record.id)

The HTTP layer binds a request_id into structlog's context variables for the
duration of each request. Log the record id or the masked identity, never a
raw key value; redact_api_keys() masks any full ``tvly-`` value that still
reaches a log entry.
"""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from keydeck.constants import (
    IDENTITY_MASK_MARKER,
    IDENTITY_VISIBLE_CHARS,
    KEY_PREFIX,
    KEY_RANDOM_LENGTH,
)

_API_KEY_RE = re.compile(
    rf"({re.escape(KEY_PREFIX)}[A-Za-z0-9]{{{IDENTITY_VISIBLE_CHARS}}})"
    rf"[A-Za-z0-9]{{{KEY_RANDOM_LENGTH - IDENTITY_VISIBLE_CHARS}}}"
)


def _redact(value: Any) -> Any:
    if isinstance(value, str):
        return _API_KEY_RE.sub(rf"\1{IDENTITY_MASK_MARKER}", value)
    return value


def redact_api_keys(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask full key values in string fields as ``tvly-XXXX****``."""
    return {name: _redact(value) for name, value in event_dict.items()}


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON format. If False, use console format.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        redact_api_keys,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "keydeck") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_id(request_id: str) -> None:
    """Bind the request id into every log entry of the current request."""
    structlog.contextvars.bind_contextvars(request_id=request_id)


def clear_request_id() -> None:
    structlog.contextvars.unbind_contextvars("request_id")


# Defaults until main.py reconfigures from the environment
configure_logging()
