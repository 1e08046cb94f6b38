"""Request correlation for scheduling logs.

Every public command on ``AvailabilityStore`` and ``BookingService`` runs
inside ``request_scope``. The scope reuses a request id bound by an outer
scope (for instance one opened with an HTTP request id) or mints a fresh
``REQ-`` id, so the store, engine, resolver and service records of one
command share it. The configured log format prints it as ``%(request_id)s``.

Usage:
    from booking_engine.logging_context import request_scope

    with request_scope("REQ-web-77"):
        service.confirm(booking_id, actor_id="artist-1")  # logged as REQ-web-77
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

NO_REQUEST_ID = "-"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST_ID)


def get_request_id() -> str:
    return _request_id.get()


def new_request_id() -> str:
    return f"REQ-{uuid.uuid4().hex[:10]}"


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request id for the duration of one command.

    An explicit ``request_id`` always wins. Without one, an id already bound
    by an outer scope is kept, so nested calls (confirm calling into the
    resolver and engine) log under one id.
    """
    current = _request_id.get()
    if request_id is None:
        request_id = current if current != NO_REQUEST_ID else new_request_id()
    token = _request_id.set(request_id)
    try:
        yield request_id
    finally:
        _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Stamps ``request_id`` on records; usable on loggers and handlers."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger whose records carry the bound request id."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
