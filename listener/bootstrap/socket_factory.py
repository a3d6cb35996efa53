"""Listening socket creation."""

import socket

from listener.bootstrap.config import ServerConfig

LISTEN_BACKLOG = 1024


def create_server_socket(config: ServerConfig) -> socket.socket:
    """Bind and listen on the configured address.

    Raises OSError when the address cannot be bound; callers treat that as
    fatal and do not retry.
    """
    return socket.create_server((config.host, config.port), backlog=LISTEN_BACKLOG)
