"""ASGI handler: translates ASGI scope/messages to sluice types.

The only component that touches raw ASGI directly. Reads the body,
builds a typed Request, dispatches through middleware to the
interceptor, and sends the Response back through ASGI send().
"""

import json
from collections.abc import Callable
from typing import Any

from sluice._internal.asgi import Receive, Scope, Send
from sluice.errors import CompilationFailure, HTTPError, TransientNetworkFailure
from sluice.http.request import Request, read_body
from sluice.http.response import Response
from sluice.interceptor import Interceptor
from sluice.middleware.protocol import Next
from sluice.server.errors import (
    handle_compilation_failure,
    handle_http_error,
    handle_internal_error,
    handle_network_failure,
)
from sluice.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    interceptor: Interceptor,
    middleware: tuple[Callable[..., Any], ...],
    message_path: str,
    debug: bool,
) -> None:
    """Process a single intercepted HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    body = await read_body(receive)
    request = Request.from_asgi(dict(scope), body)

    try:
        # Build the innermost handler (message channel + interceptor)
        async def dispatch(req: Request) -> Response:
            if req.method == "POST" and req.path == message_path:
                return _accept_message(interceptor, req)
            return await interceptor.handle(req)

        # Wrap middleware around the dispatch
        handler: Next = dispatch
        for mw in reversed(middleware):
            outer = handler
            mw_ref = mw

            async def make_next(req: Request, _mw: Any = mw_ref, _next: Next = outer) -> Response:
                return await _mw(req, _next)

            handler = make_next

        # Execute the full pipeline
        response = await handler(request)

    except HTTPError as exc:
        response = handle_http_error(exc, request, debug)
    except CompilationFailure as exc:
        response = handle_compilation_failure(exc, request, debug)
    except TransientNetworkFailure as exc:
        response = handle_network_failure(exc, request, debug)
    except Exception as exc:
        response = handle_internal_error(exc, request, debug)

    await send_response(response, send, head=request.method == "HEAD")


def _accept_message(interceptor: Interceptor, request: Request) -> Response:
    """Hand a diagnostic payload to the interceptor; no commands exist."""
    try:
        payload: object = json.loads(request.body) if request.body else None
    except ValueError:
        payload = request.body.decode("utf-8", errors="replace")
    interceptor.post_message(payload)
    return Response(status=204)
