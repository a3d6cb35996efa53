"""Worker thread logic for handling individual client connections."""

import logging
import socket
from pathlib import Path
from typing import Optional

from listener.domain.connection_context import ListenerLoggerAdapter, connection_scope
from listener.domain.http_types import HttpResponse, IncomingRequest, should_close
from listener.domain.response_builders import (
    bad_request_response,
    header_too_large_response,
)
from listener.handlers.request_handler import handle_request
from listener.pipeline.io import HeaderTooLarge, receive_request, send_response

WORKER_LOGGER = ListenerLoggerAdapter(
    logging.getLogger("http_listener.transport.worker"), {}
)


def format_peer(client_address) -> str:
    """Render a socket address as host:port."""
    return f"{client_address[0]}:{client_address[1]}"


def _read_request(
    client_socket: socket.socket, buffer: bytes, peer_addr: str
) -> tuple[Optional[IncomingRequest], bytes]:
    """Read one request; protocol errors are answered before giving up."""
    try:
        return receive_request(client_socket, buffer)
    except HeaderTooLarge:
        WORKER_LOGGER.warning(
            "request header block too large",
            extra={"event": "header_too_large", "peer_addr": peer_addr},
        )
        send_response(client_socket, header_too_large_response())
    except ValueError as error:
        WORKER_LOGGER.warning(
            "malformed request",
            extra={
                "event": "malformed_request",
                "peer_addr": peer_addr,
                "error": str(error),
            },
        )
        send_response(client_socket, bad_request_response())
    return None, b""


def _respond(
    client_socket: socket.socket, request: IncomingRequest, response: HttpResponse
) -> bool:
    """Send the response and report whether the connection must close."""
    response.close_connection = response.close_connection or should_close(request)
    send_response(client_socket, response, head_only=request.method == "HEAD")
    return response.close_connection


def _close_socket(client_socket: socket.socket, peer_addr: str) -> None:
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    client_socket.close()
    if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        WORKER_LOGGER.debug(
            "connection closed",
            extra={"event": "connection_closed", "peer_addr": peer_addr},
        )


def handle_client(
    client_socket: socket.socket,
    client_address,
    serve_root: Optional[Path] = None,
) -> None:
    """Serve requests on one connection, in arrival order, until it closes.

    Failures end this connection only and are never raised to the caller.
    """
    buffer = b""
    peer_addr = format_peer(client_address)

    with connection_scope():
        try:
            while True:
                request, buffer = _read_request(client_socket, buffer, peer_addr)
                if request is None:
                    break
                response = handle_request(request, serve_root)
                if _respond(client_socket, request, response):
                    break
        except OSError as error:
            WORKER_LOGGER.warning(
                "error serving connection",
                extra={
                    "event": "connection_error",
                    "peer_addr": peer_addr,
                    "error_type": type(error).__name__,
                    "error": str(error),
                },
            )
        except Exception as error:  # pylint: disable=broad-except
            WORKER_LOGGER.error(
                "unexpected error in connection worker",
                extra={
                    "event": "worker_error",
                    "peer_addr": peer_addr,
                    "error_type": type(error).__name__,
                    "error": str(error),
                },
                exc_info=True,
            )
        finally:
            _close_socket(client_socket, peer_addr)
