"""Middleware protocol and Next type alias.

A middleware is any callable matching::

    async def my_mw(request: Request, next: Next) -> Response: ...

No base class required. The framework checks the shape, not the lineage.
The innermost ``next`` is the interceptor itself, so middleware sees
every response the proxy produces: cached, compiled or fetched.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from sluice.http.request import Request
from sluice.http.response import Response

# The next handler in the middleware chain
type Next = Callable[[Request], Awaitable[Response]]


class Middleware(Protocol):
    """Protocol for sluice middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(request: Request, next: Next) -> Response:
            start = time.monotonic()
            response = await next(request)
            elapsed = time.monotonic() - start
            return response.with_header("X-Time", f"{elapsed:.3f}")

        # Class middleware
        class NoStore:
            async def __call__(self, request: Request, next: Next) -> Response:
                response = await next(request)
                return response.with_header("Cache-Control", "no-store")
    """

    async def __call__(self, request: Request, next: Next) -> Response: ...
