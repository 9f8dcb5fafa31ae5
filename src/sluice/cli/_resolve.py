"""App import resolution: resolves ``"module:attribute"`` strings to App instances.

Shared by every ``sluice`` subcommand to locate the App from a
user-supplied import string.
"""

import argparse
import importlib
import sys

from sluice.app import App


def resolve_app(import_string: str) -> App:
    """Resolve an import string to a sluice App instance.

    Accepts ``"module:attribute"`` format.  When the attribute portion
    is omitted, defaults to ``"app"`` (e.g. ``"proxy"`` resolves to
    ``proxy.app``).

    Supports factory functions: if the resolved object is callable and
    not an App instance, it will be called (assuming it's an app factory).

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a sluice ``App`` or callable.

    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "app"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    # Support factory functions - call them if they're not already an App
    if callable(obj) and not isinstance(obj, App):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, App):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a sluice.App instance"
        raise TypeError(msg)

    return obj


def load_app(args: argparse.Namespace) -> App:
    """Resolve ``args.app`` and configure logging, exiting on failure."""
    from sluice.cli import _configure_logging

    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    _configure_logging(args.log_level or app.config.log_level)
    return app
