"""Per-request logging and dispatch."""

import logging
from pathlib import Path
from typing import Any, Optional

from listener.domain.connection_context import ListenerLoggerAdapter
from listener.domain.http_types import HttpResponse, IncomingRequest, headers_for_log
from listener.domain.response_builders import ok_response
from listener.handlers.file_handler import serve_file

REQUEST_LOGGER = ListenerLoggerAdapter(
    logging.getLogger("http_listener.handlers.request"), {}
)


def log_request(request: IncomingRequest) -> None:
    """Emit the structured record describing an incoming request.

    The body field is present only for non-empty bodies and is decoded as
    UTF-8 with invalid sequences replaced.
    """
    fields: dict[str, Any] = {
        "event": "incoming_request",
        "method": request.method,
        "uri": request.target,
        "headers": headers_for_log(request.headers),
    }
    if request.body:
        fields["body"] = request.body.decode("utf-8", errors="replace")
    REQUEST_LOGGER.info("incoming request", extra=fields)


def handle_request(
    request: IncomingRequest, serve_root: Optional[Path] = None
) -> HttpResponse:
    """Log the request, then answer OK or delegate to file serving."""
    log_request(request)
    if serve_root is None:
        return ok_response()
    return serve_file(serve_root, request.path)
