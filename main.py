"""HTTP listener that logs every request and optionally serves static files."""

import logging
import sys

from listener.bootstrap.config import build_server_config, parse_cli_args
from listener.bootstrap.logging_setup import configure_logging
from listener.bootstrap.socket_factory import create_server_socket
from listener.domain.connection_context import ListenerLoggerAdapter
from listener.transport.accept_loop import run_server

MAIN_LOGGER = ListenerLoggerAdapter(logging.getLogger("http_listener.main"), {})


def main(argv: list[str] | None = None) -> None:
    """Configure logging, bind the listener and accept until a fatal error."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level, args.log_destination, args.format)
    config = build_server_config(args)

    try:
        server_socket = create_server_socket(config)
    except OSError as error:
        MAIN_LOGGER.critical(
            "failed to bind listener",
            extra={
                "event": "bind_failed",
                "host": config.host,
                "port": config.port,
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )
        sys.exit(1)

    try:
        run_server(config, server_socket)
    except OSError as error:
        MAIN_LOGGER.critical(
            "accept loop failed",
            extra={
                "event": "accept_failed",
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
