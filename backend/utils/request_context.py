"""Per-request correlation id shared between middleware, services and logging."""

import logging
import uuid
from contextvars import ContextVar

REQUEST_ID_HEADER = "x-request-id"

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def new_request_id() -> str:
    """Generate a fresh correlation id."""
    return str(uuid.uuid4())


def get_request_id() -> str | None:
    """Return the correlation id bound to the current context, if any."""
    return _request_id.get()


def set_request_id(request_id: str | None):
    """Bind a correlation id to the current context.

    Returns:
        A token that can be passed to :func:`reset_request_id`.
    """
    return _request_id.set(request_id)


def reset_request_id(token) -> None:
    """Restore the correlation id that was bound before ``set_request_id``."""
    _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Attach the current correlation id to every log record as ``request_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True
