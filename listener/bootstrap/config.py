"""Listener configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value


DEFAULT_HOST = _env_str("HTTP_LISTENER_HOST", "0.0.0.0")
DEFAULT_PORT = 8080
DEFAULT_SERVE_DIR = _env_str("HTTP_LISTENER_SERVE_DIR", None)
DEFAULT_LOG_FORMAT = "json"
LOG_FORMATS = ("json",)

MAX_PORT = 65535


@dataclass(frozen=True)
class ServerConfig:
    """Immutable listener settings shared by every connection thread."""

    port: int
    serve_root: Optional[Path] = None
    host: str = "0.0.0.0"


def port_number(value: str) -> int:
    """Argparse type accepting a TCP port in the 0-65535 range."""
    try:
        port = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from exc
    if not 0 <= port <= MAX_PORT:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for listener configuration."""
    # argparse runs port_number on string defaults, so the env value is checked too.
    default_port = _env_str("HTTP_LISTENER_PORT", str(DEFAULT_PORT))
    parser = argparse.ArgumentParser(
        description="Log incoming HTTP requests and optionally serve static files"
    )
    parser.add_argument(
        "--port",
        "-p",
        type=port_number,
        default=default_port,
        help="Port to listen on",
    )
    parser.add_argument(
        "--host",
        default=DEFAULT_HOST,
        help="Address to bind the listening socket to",
    )
    parser.add_argument(
        "--serve-dir",
        default=DEFAULT_SERVE_DIR,
        help="Serve files from this directory (omit to answer every request with OK)",
    )
    parser.add_argument(
        "--format",
        "-f",
        default=DEFAULT_LOG_FORMAT,
        choices=LOG_FORMATS,
        type=str.lower,
        help="Log output format",
    )
    default_log_level = os.getenv("HTTP_LISTENER_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("HTTP_LISTENER_LOG_DESTINATION", "stdout")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    return parser.parse_args(argv)


def build_server_config(args: argparse.Namespace) -> ServerConfig:
    """Freeze parsed CLI arguments into the process-wide ServerConfig."""
    serve_root = Path(args.serve_dir) if args.serve_dir else None
    return ServerConfig(port=args.port, serve_root=serve_root, host=args.host)
