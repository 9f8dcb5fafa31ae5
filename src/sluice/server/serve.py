"""Serve a sluice App with pounce.

Always a single worker: the virtual module registry and the current
version live in the worker's memory, and a component's entry module and
its sub-modules must be answered by the same process.
"""

from __future__ import annotations


def run_server(
    app: object,
    host: str,
    port: int,
    *,
    reload: bool = False,
    app_path: str | None = None,
) -> None:
    """Start a pounce server with the given sluice App.

    Pounce's ``run()`` takes an import string (e.g., ``"proxy:app"``),
    but we have a live ``App`` object, so ``pounce.Server`` is used
    directly with the ASGI callable.

    Args:
        app: ASGI callable (sluice App instance).
        host: Bind host address.
        port: Bind port number.
        reload: Restart on source changes (development only).
        app_path: Optional ``"module:attribute"`` import string, needed
            for reload to pick up code changes.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
    )
    server = Server(config, app, app_path=app_path)
    server.run()
