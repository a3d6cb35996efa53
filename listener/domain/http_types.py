"""Shared HTTP type definitions to avoid circular imports."""

from dataclasses import dataclass, field
from typing import Any, Optional

Headers = tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class IncomingRequest:
    """A fully decoded HTTP request owned by a single connection thread."""

    method: str
    target: str
    path: str
    version: str
    headers: Headers = ()
    body: bytes = b""


@dataclass
class HttpResponse:
    """Represents an HTTP response to be sent to a client."""

    status: int
    reason: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    close_connection: bool = False

    @property
    def status_line(self) -> str:
        """Render the HTTP/1.1 status line."""
        return f"HTTP/1.1 {self.status} {self.reason}"


def get_header(headers: Headers, name: str) -> Optional[str]:
    """Return the first value for name, or None when absent."""
    wanted = name.lower()
    for header_name, value in headers:
        if header_name.lower() == wanted:
            return value
    return None


def get_header_values(headers: Headers, name: str) -> list[str]:
    """Return every value for name in arrival order."""
    wanted = name.lower()
    return [value for header_name, value in headers if header_name.lower() == wanted]


def headers_for_log(headers: Headers) -> dict[str, Any]:
    """Collapse headers into a JSON-friendly mapping.

    Names are lowercased; a name sent more than once maps to the list of its
    values in arrival order.
    """
    collected: dict[str, Any] = {}
    for name, value in headers:
        key = name.lower()
        if key not in collected:
            collected[key] = value
        elif isinstance(collected[key], list):
            collected[key].append(value)
        else:
            collected[key] = [collected[key], value]
    return collected


def should_close(request: IncomingRequest) -> bool:
    """Determine whether the connection should be closed after responding."""
    tokens = {
        token.strip().lower()
        for value in get_header_values(request.headers, "connection")
        for token in value.split(",")
    }
    if "close" in tokens:
        return True
    if request.version == "HTTP/1.0":
        return "keep-alive" not in tokens
    return False
