"""Sluice exception hierarchy.

Shared across the cache layer, fetcher, compiler, interceptor and the
ASGI handler so every module raises and catches the same types.
"""

from dataclasses import dataclass


class SluiceError(Exception):
    """Base for all sluice-specific errors."""


class ConfigurationError(SluiceError):
    """Raised when proxy configuration is invalid.

    Typically raised by ``ProxyConfig.validate()`` at app startup.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(SluiceError):
    """An error that maps directly to an HTTP status code.

    Raised by middleware or the handler. The ASGI handler catches these
    and turns them into a plain-text response with the same status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class TransientNetworkFailure(SluiceError):
    """The upstream could not be reached.

    ``offline`` is True when the failure means the proxy itself has no
    connectivity (connection refused, DNS failure, connect timeout).
    Only offline failures trigger the offline snapshot lookup; any
    other transport failure propagates to the caller.
    """

    def __init__(self, url: str, reason: str = "", *, offline: bool = False) -> None:
        self.url = url
        self.reason = reason
        self.offline = offline
        detail = f"{url}: {reason}" if reason else url
        super().__init__(detail)


class CompilationFailure(SluiceError):
    """A source body could not be turned into a module.

    Always carries the URL of the source so the log line and the error
    response point at the broken file.
    """

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}" if reason else url)


class CacheWriteFailure(SluiceError):
    """A cache generation rejected a write.

    Caching is advisory: callers outside the key-value store log and
    drop this error instead of failing the request.
    """


class ManifestError(SluiceError):
    """The version manifest was missing fields or was not JSON."""
