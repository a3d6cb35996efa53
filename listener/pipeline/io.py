"""HTTP/1.1 input/output operations."""

import logging
import re
import socket
import urllib.parse
from email.utils import formatdate
from typing import Optional, Tuple

from listener.domain.connection_context import ListenerLoggerAdapter
from listener.domain.http_types import (
    Headers,
    HttpResponse,
    IncomingRequest,
    get_header,
    get_header_values,
)
from listener.domain.response_builders import continue_response

IO_LOGGER = ListenerLoggerAdapter(logging.getLogger("http_listener.pipeline.io"), {})

HEADER_DELIMITER = b"\r\n\r\n"
CRLF = b"\r\n"
HEADER_ENCODING = "iso-8859-1"
MAX_HEADER_BYTES = 64 * 1024
MAX_CHUNK_LINE_BYTES = 4096
RECV_SIZE = 4096
SUPPORTED_VERSIONS = {"HTTP/1.0", "HTTP/1.1"}

_TOKEN_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_CHUNK_SIZE_RE = re.compile(r"[0-9A-Fa-f]+")


class HeaderTooLarge(ValueError):
    """Raised when the request header block exceeds MAX_HEADER_BYTES."""


class IncompleteRequest(ConnectionError):
    """Raised when the peer closes the connection in the middle of a request."""


def parse_request_line(request_line: str) -> Tuple[str, str, str]:
    """Split the request line into method, target and version."""
    parts = request_line.split(" ")
    if len(parts) != 3:
        raise ValueError("Invalid request line")
    method, target, version = parts
    if not _TOKEN_RE.fullmatch(method) or not target:
        raise ValueError("Invalid request line")
    if version not in SUPPORTED_VERSIONS:
        raise ValueError(f"Unsupported HTTP version: {version}")
    return method, target, version


def request_path(target: str) -> str:
    """Return the path component of a request target, without the query."""
    if target.startswith("/"):
        return target.split("?", 1)[0]
    if "://" in target:
        return urllib.parse.urlsplit(target).path or "/"
    return target


def parse_headers(lines: list[str]) -> Headers:
    """Convert raw header lines into ordered (name, value) pairs."""
    parsed = []
    for line in lines:
        name, separator, value = line.partition(":")
        if not separator or not _TOKEN_RE.fullmatch(name):
            raise ValueError(f"Malformed header line: {line!r}")
        parsed.append((name, value.strip(" \t")))
    return tuple(parsed)


def determine_content_length(headers: Headers) -> int:
    """Validate and return the declared Content-Length for the request."""
    values = {value.strip() for value in get_header_values(headers, "content-length")}
    if not values:
        return 0
    if len(values) > 1:
        raise ValueError("Conflicting Content-Length headers")
    header_value = values.pop()
    if not header_value.isdigit():
        raise ValueError("Invalid Content-Length")
    return int(header_value)


def is_chunked(headers: Headers) -> bool:
    """Return True when chunked is the final transfer coding.

    Any other transfer coding cannot be framed and is rejected.
    """
    transfer_encoding = get_header(headers, "transfer-encoding")
    if transfer_encoding is None:
        return False
    codings = [c.strip().lower() for c in transfer_encoding.split(",") if c.strip()]
    if not codings or codings[-1] != "chunked":
        raise ValueError("Unsupported Transfer-Encoding")
    return True


def _recv_or_raise(client_socket: socket.socket) -> bytes:
    chunk = client_socket.recv(RECV_SIZE)
    if not chunk:
        raise IncompleteRequest("Connection closed before request completed")
    return chunk


def _read_line(client_socket: socket.socket, buffer: bytes) -> Tuple[bytes, bytes]:
    while CRLF not in buffer:
        if len(buffer) > MAX_CHUNK_LINE_BYTES:
            raise ValueError("Chunk line too long")
        buffer += _recv_or_raise(client_socket)
    line, remainder = buffer.split(CRLF, 1)
    return line, remainder


def _read_fixed_body(
    client_socket: socket.socket, buffer: bytes, length: int
) -> Tuple[bytes, bytes]:
    """Read a body with a declared content-length."""
    # No size cap: the whole body is buffered so it can be logged verbatim.
    data = buffer
    while len(data) < length:
        data += _recv_or_raise(client_socket)
    return data[:length], data[length:]


def _read_chunked_body(
    client_socket: socket.socket, buffer: bytes
) -> Tuple[bytes, bytes]:
    """Read a chunked transfer-encoded body, discarding extensions and trailers."""
    chunks: list[bytes] = []
    remaining = buffer
    while True:
        size_line, remaining = _read_line(client_socket, remaining)
        size_text = size_line.split(b";", 1)[0].strip().decode(HEADER_ENCODING)
        if not _CHUNK_SIZE_RE.fullmatch(size_text):
            raise ValueError("Invalid chunk size")
        size = int(size_text, 16)
        if size == 0:
            trailer, remaining = _read_line(client_socket, remaining)
            while trailer:
                trailer, remaining = _read_line(client_socket, remaining)
            return b"".join(chunks), remaining
        while len(remaining) < size + len(CRLF):
            remaining += _recv_or_raise(client_socket)
        if remaining[size : size + len(CRLF)] != CRLF:
            raise ValueError("Missing chunk terminator")
        chunks.append(remaining[:size])
        remaining = remaining[size + len(CRLF) :]


def _expects_continue(version: str, headers: Headers) -> bool:
    expect = get_header(headers, "expect")
    return (
        version == "HTTP/1.1"
        and expect is not None
        and expect.lower() == "100-continue"
    )


def receive_request(
    client_socket: socket.socket, buffer: bytes
) -> Tuple[Optional[IncomingRequest], bytes]:
    """Read bytes from the socket until a complete request is available.

    Returns (None, b"") when the peer closes the connection cleanly between
    requests. Leftover bytes belong to the next request on the connection.
    """
    while True:
        buffer = buffer.lstrip(b"\r\n")
        if HEADER_DELIMITER in buffer:
            break
        if len(buffer) > MAX_HEADER_BYTES:
            raise HeaderTooLarge("Request header block too large")
        chunk = client_socket.recv(RECV_SIZE)
        if not chunk:
            if buffer:
                raise IncompleteRequest("Connection closed before headers completed")
            return None, b""
        buffer += chunk

    header_block, remainder = buffer.split(HEADER_DELIMITER, 1)
    if len(header_block) > MAX_HEADER_BYTES:
        raise HeaderTooLarge("Request header block too large")
    header_lines = header_block.decode(HEADER_ENCODING).split("\r\n")
    method, target, version = parse_request_line(header_lines[0])
    headers = parse_headers(header_lines[1:])

    chunked = is_chunked(headers)
    content_length = 0 if chunked else determine_content_length(headers)
    body_pending = chunked or len(remainder) < content_length
    if body_pending and _expects_continue(version, headers):
        send_interim_response(client_socket, continue_response())

    if chunked:
        body, leftover = _read_chunked_body(client_socket, remainder)
    else:
        body, leftover = _read_fixed_body(client_socket, remainder, content_length)

    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Parsed request",
            extra={"event": "request_parsed", "method": method, "uri": target},
        )
    request = IncomingRequest(
        method=method,
        target=target,
        path=request_path(target),
        version=version,
        headers=headers,
        body=body,
    )
    return request, leftover


def send_interim_response(client_socket: socket.socket, response: HttpResponse) -> None:
    """Write a 1xx response, which carries neither headers nor body."""
    client_socket.sendall(response.status_line.encode() + HEADER_DELIMITER)


def send_response(
    client_socket: socket.socket, response: HttpResponse, head_only: bool = False
) -> None:
    """Serialize and send the HTTP response over the socket.

    With head_only the body is omitted but Content-Length still describes it.
    """
    headers = {"Date": formatdate(usegmt=True)}
    headers.update(response.headers)
    headers["Content-Length"] = str(len(response.body))
    if response.close_connection:
        headers["Connection"] = "close"
    header_lines = [response.status_line]
    header_lines.extend(f"{name}: {value}" for name, value in headers.items())
    header_block = "\r\n".join(header_lines).encode(HEADER_ENCODING) + HEADER_DELIMITER
    payload = header_block if head_only else header_block + response.body
    client_socket.sendall(payload)
    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Sent response",
            extra={"event": "response_sent", "status": response.status},
        )
