"""Main connection acceptance loop."""

import logging
import socket
import threading
from typing import Optional

from listener.bootstrap.config import ServerConfig
from listener.bootstrap.socket_factory import create_server_socket
from listener.domain.connection_context import ListenerLoggerAdapter
from listener.transport.worker import format_peer, handle_client

ACCEPT_LOGGER = ListenerLoggerAdapter(
    logging.getLogger("http_listener.transport.accept"), {}
)


def _log_startup(config: ServerConfig) -> None:
    if config.serve_root is not None:
        ACCEPT_LOGGER.info(
            "starting server in file-serve mode",
            extra={
                "event": "server_starting",
                "host": config.host,
                "port": config.port,
                "dir": str(config.serve_root),
            },
        )
    else:
        ACCEPT_LOGGER.info(
            "starting server in test/log mode",
            extra={
                "event": "server_starting",
                "host": config.host,
                "port": config.port,
            },
        )


def _spawn_worker(
    client_socket: socket.socket, client_address, config: ServerConfig
) -> threading.Thread:
    """Hand the connection to its own thread; the acceptor keeps no reference to it."""
    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, config.serve_root),
        name=f"conn-{format_peer(client_address)}",
        daemon=True,
    )
    thread.start()
    return thread


def run_server(
    config: ServerConfig, server_socket: Optional[socket.socket] = None
) -> None:
    """Accept connections forever, one worker thread per connection.

    Bind and accept failures are raised as OSError and are not retried.
    """
    if server_socket is None:
        server_socket = create_server_socket(config)
    _log_startup(config)

    with server_socket:
        while True:
            client_socket, client_address = server_socket.accept()
            ACCEPT_LOGGER.info(
                "accepted connection",
                extra={
                    "event": "connection_accepted",
                    "peer_addr": format_peer(client_address),
                },
            )
            _spawn_worker(client_socket, client_address, config)
