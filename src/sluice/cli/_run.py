"""``sluice run``: start the proxy server."""

import argparse

from sluice.cli._resolve import load_app


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and serve it with pounce.

    ``--host`` and ``--port`` override the app's config.
    """
    app = load_app(args)

    from sluice.server.serve import run_server as serve

    serve(
        app,
        args.host or app.config.host,
        args.port or app.config.port,
        reload=app.config.debug,
        app_path=args.app,
    )
