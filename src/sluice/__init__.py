"""Sluice: an intercepting proxy that compiles modules on the fly.

Sits between a page and its origin. Static assets are cached in
per-version generations, TypeScript, single-file components, JSON and
CSS are compiled into JavaScript modules on request, and the last good
network response stands in whenever the origin is unreachable.

Basic usage::

    from sluice import App, ProxyConfig

    app = App(ProxyConfig(upstream="http://127.0.0.1:5173"))
    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "CacheWriteFailure",
    "CompilationFailure",
    "ConfigurationError",
    "HTTPError",
    "ManifestError",
    "Middleware",
    "Next",
    "ProxyConfig",
    "Request",
    "Response",
    "SluiceError",
    "Toolchain",
    "TransientNetworkFailure",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import sluice`` fast while providing a clean top-level API.
    """
    if name == "App":
        from sluice.app import App

        return App

    if name == "ProxyConfig":
        from sluice.config import ProxyConfig

        return ProxyConfig

    if name == "Request":
        from sluice.http.request import Request

        return Request

    if name == "Response":
        from sluice.http.response import Response

        return Response

    if name == "Toolchain":
        from sluice.compiler.toolchain import Toolchain

        return Toolchain

    if name in ("Middleware", "Next"):
        from sluice.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in (
        "CacheWriteFailure",
        "CompilationFailure",
        "ConfigurationError",
        "HTTPError",
        "ManifestError",
        "SluiceError",
        "TransientNetworkFailure",
    ):
        from sluice import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
