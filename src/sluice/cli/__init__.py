"""Sluice CLI: serve the proxy and maintain cache generations.

Entry point registered as ``sluice`` in ``pyproject.toml``::

    [project.scripts]
    sluice = "sluice.cli:main"
"""

import argparse
import logging
import sys

_LOG_LEVELS = ("debug", "info", "warning", "error")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``sluice`` command."""
    parser = argparse.ArgumentParser(
        prog="sluice",
        description="Sluice: an intercepting proxy that compiles modules on the fly.",
    )
    parser.add_argument(
        "--log-level",
        choices=_LOG_LEVELS,
        default=None,
        help="Logging level (defaults to the app's config)",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- sluice run -------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Start the proxy server")
    run_parser.add_argument("app", help="Import string (e.g. proxy:app)")
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")

    # -- sluice version ---------------------------------------------------
    version_parser = subparsers.add_parser(
        "version", help="Fetch the version manifest and rotate generations on change"
    )
    version_parser.add_argument("app", help="Import string (e.g. proxy:app)")

    # -- sluice sweep -----------------------------------------------------
    sweep_parser = subparsers.add_parser(
        "sweep", help="Delete cache generations not used by the current version"
    )
    sweep_parser.add_argument("app", help="Import string (e.g. proxy:app)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from sluice.cli._run import run_server

        run_server(args)
    elif args.command == "version":
        from sluice.cli._maintenance import run_version

        run_version(args)
    elif args.command == "sweep":
        from sluice.cli._maintenance import run_sweep

        run_sweep(args)
