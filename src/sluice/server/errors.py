"""Error handling pipeline for intercepted requests.

Maps the exception taxonomy onto failed responses:

- ``HTTPError`` → its own status
- ``CompilationFailure`` → 500 (the page sees a broken module load)
- ``TransientNetworkFailure`` → 504 when offline with no snapshot, else 502
- anything else → 500, logged with its traceback
"""

import logging
import traceback

from sluice.errors import CompilationFailure, HTTPError, TransientNetworkFailure
from sluice.http.request import Request
from sluice.http.response import Response

logger = logging.getLogger("sluice.server")

_TEXT = "text/plain; charset=utf-8"


def _debug_body(summary: str, exc: BaseException) -> str:
    return summary + "\n\n" + "".join(traceback.format_exception(exc))


def handle_http_error(exc: HTTPError, request: Request, debug: bool) -> Response:
    """Map an HTTPError to a plain-text Response."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.url, exc.detail)
    detail = exc.detail or f"Error {exc.status}"
    if debug and exc.detail:
        detail = f"{exc.status}: {exc.detail}"
    resp = Response(body=detail, status=exc.status, content_type=_TEXT)
    for name, value in exc.headers:
        resp = resp.with_header(name, value)
    return resp


def handle_compilation_failure(exc: CompilationFailure, request: Request, debug: bool) -> Response:
    """A source that failed to compile. Already logged by the compiler."""
    summary = f"Compilation failed: {exc.url}"
    if exc.reason:
        summary = f"{summary}\n{exc.reason}"
    body = _debug_body(summary, exc) if debug else summary
    return Response(body=body, status=500, content_type=_TEXT)


def handle_network_failure(exc: TransientNetworkFailure, request: Request, debug: bool) -> Response:
    """The upstream was unreachable and no snapshot could stand in."""
    status = 504 if exc.offline else 502
    logger.warning("%d %s %s: %s", status, request.method, request.url, exc)
    summary = "Offline and not cached" if exc.offline else "Bad Gateway"
    body = f"{summary}: {exc}" if debug else summary
    return Response(body=body, status=status, content_type=_TEXT)


def handle_internal_error(exc: Exception, request: Request, debug: bool) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception("500 %s %s", request.method, request.url)
    if debug:
        return Response(
            body=_debug_body("Internal Server Error", exc), status=500, content_type=_TEXT
        )
    return Response(body="Internal Server Error", status=500, content_type=_TEXT)
