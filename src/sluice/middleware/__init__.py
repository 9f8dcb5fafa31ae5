"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

Middleware wraps the interceptor, so it runs for every proxied request.
"""

from sluice.middleware.protocol import Middleware, Next

__all__ = ["Middleware", "Next"]
