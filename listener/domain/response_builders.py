"""Pure HTTP response builders."""

from listener.domain.http_types import HttpResponse

OK_BODY = b"OK\n"
NOT_FOUND_BODY = b"Not Found"
FILE_CONTENT_TYPE = "application/octet-stream"


def ok_response() -> HttpResponse:
    """Return the fixed 200 response used when no serve root is configured."""
    return HttpResponse(200, "OK", {}, OK_BODY)


def file_response(payload: bytes) -> HttpResponse:
    """Return a 200 response carrying raw file bytes."""
    return HttpResponse(200, "OK", {"Content-Type": FILE_CONTENT_TYPE}, payload)


def not_found_response() -> HttpResponse:
    """Return a 404 response that never reveals why the file was unavailable."""
    return HttpResponse(404, "Not Found", {}, NOT_FOUND_BODY)


def bad_request_response() -> HttpResponse:
    """Produce a 400 response for an undecodable request; always closes."""
    return HttpResponse(400, "Bad Request", {}, b"", True)


def header_too_large_response() -> HttpResponse:
    """Produce a 431 response for an oversized header block; always closes."""
    return HttpResponse(431, "Request Header Fields Too Large", {}, b"", True)


def continue_response() -> HttpResponse:
    """Interim response sent before reading a body announced with Expect."""
    return HttpResponse(100, "Continue")
