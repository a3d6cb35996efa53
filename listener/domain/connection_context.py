"""Connection identity carried through logging.

Each worker thread binds a fresh id for the lifetime of its connection, so
every record emitted while serving that connection can be grouped by it.
"""

import contextlib
import contextvars
import logging
import uuid
from typing import Any, Iterator, MutableMapping, Optional

LOGGER_PREFIX = "http_listener."
NO_CONNECTION = "-"

_current_connection: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "connection_id", default=None
)


def new_connection_id() -> str:
    return uuid.uuid4().hex


def get_connection_id() -> Optional[str]:
    """Id of the connection served by this thread, or None outside a worker."""
    return _current_connection.get()


@contextlib.contextmanager
def connection_scope(connection_id: Optional[str] = None) -> Iterator[str]:
    """Bind a connection id for the duration of the block.

    The previous value is restored on exit, even when the block raises.
    """
    bound = connection_id or new_connection_id()
    token = _current_connection.set(bound)
    try:
        yield bound
    finally:
        _current_connection.reset(token)


def component_name(logger_name: str) -> str:
    """Strip the project prefix from a logger name."""
    if logger_name.startswith(LOGGER_PREFIX):
        return logger_name[len(LOGGER_PREFIX) :]
    return logger_name


class ListenerLoggerAdapter(logging.LoggerAdapter):
    """Stamps records with the bound connection and the emitting component."""

    def __init__(self, logger: logging.Logger, extra=None):
        super().__init__(logger, extra or {})
        self.component = component_name(logger.name)

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["connection_id"] = get_connection_id() or NO_CONNECTION
        extra["component"] = self.component
        kwargs["extra"] = extra
        return msg, kwargs
