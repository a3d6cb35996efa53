"""Static file serving."""

import logging
import os
from pathlib import Path

from listener.domain.connection_context import ListenerLoggerAdapter
from listener.domain.http_types import HttpResponse
from listener.domain.response_builders import file_response, not_found_response

FILE_LOGGER = ListenerLoggerAdapter(
    logging.getLogger("http_listener.handlers.file"), {}
)

INDEX_DOCUMENT = "index.html"


def resolve_file_path(root: Path, uri_path: str) -> Path:
    """Map a request path onto the serve root.

    Exactly one leading slash is removed and an empty remainder becomes
    index.html. The join is a plain path join: ``..`` segments are left for
    the filesystem to interpret, and a remainder that is still absolute (from
    a path such as ``//etc/passwd``) replaces the root entirely.
    """
    relative = uri_path[1:] if uri_path.startswith("/") else uri_path
    if not relative:
        relative = INDEX_DOCUMENT
    return Path(os.path.join(root, relative))


def serve_file(root: Path, uri_path: str) -> HttpResponse:
    """Read the mapped file whole; any failure to read it becomes a plain 404.

    ValueError covers paths the OS cannot represent, such as embedded NULs.
    """
    full_path = resolve_file_path(root, uri_path)
    try:
        payload = full_path.read_bytes()
    except (OSError, ValueError) as error:
        FILE_LOGGER.warning(
            "file not found",
            extra={
                "event": "file_not_found",
                "path": str(full_path),
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
        return not_found_response()

    FILE_LOGGER.info(
        "serving file", extra={"event": "file_served", "path": str(full_path)}
    )
    return file_response(payload)
