"""Request ID logging context for tracing a chat request across modules.

Every inbound HTTP request gets a correlation ID which is attached to
every log record emitted while it is handled, and echoed back to the
caller in the response body and the ``X-Request-ID`` header.

Usage:
    from support_bot.logging_context import get_request_logger, set_request_id

    set_request_id(new_request_id())
    logger = get_request_logger(__name__)
    logger.info("Classifying message")  # -> [req_1718000000000_x1y2z3a4b] Classifying message
"""

import logging
import secrets
import string
import time
from contextvars import ContextVar

_request_id: ContextVar[str] = ContextVar("request_id", default="NO_REQUEST_ID")

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_request_id() -> str:
    """Generate a fresh ID in the ``req_<epoch-ms>_<random9>`` format."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


def set_request_id(request_id: str) -> None:
    """Set the correlation ID for the current context."""
    _request_id.set(request_id)


def get_request_id() -> str:
    """Retrieve the current correlation ID."""
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    """Injects request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger with the RequestIdFilter attached.

    The filter adds ``request_id`` to each record so formatters can
    include ``%(request_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
