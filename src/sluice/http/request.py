"""Immutable intercepted request.

Frozen metadata plus the already-received body. A request is classified
exactly once; rewriting it (adding the version query, switching the
fetch mode) produces a new object through ``with_*()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import SplitResult, urlsplit, urlunsplit

from sluice._internal.asgi import Receive
from sluice.http.headers import Headers
from sluice.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable intercepted request.

    ``url`` is always absolute. ``mode``, ``credentials``, ``redirect``
    and ``cache`` mirror the fetch options a browser attaches to a
    request; the fetcher honours ``redirect`` and ``cache``.
    """

    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    mode: str = "cors"
    credentials: str = "same-origin"
    redirect: str = "follow"
    cache: str = "default"

    # -- URL parts --

    @property
    def parts(self) -> SplitResult:
        return urlsplit(self.url)

    @property
    def scheme(self) -> str:
        return self.parts.scheme

    @property
    def origin(self) -> str:
        """``scheme://host[:port]`` of the request URL."""
        parts = self.parts
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def path(self) -> str:
        return self.parts.path or "/"

    @property
    def search(self) -> str:
        """The query string including its leading ``?``, or ``""``."""
        query = self.parts.query
        return f"?{query}" if query else ""

    @property
    def query(self) -> QueryParams:
        return QueryParams(self.parts.query)

    @property
    def is_network(self) -> bool:
        """True for ``http`` and ``https`` URLs."""
        return self.scheme.startswith("http")

    # -- Transformations --

    def with_url(self, url: str) -> Request:
        """Return a new Request for a different URL."""
        return replace(self, url=url)

    def with_query(self, query: QueryParams) -> Request:
        """Return a new Request with the query string replaced."""
        parts = self.parts
        return replace(self, url=urlunsplit(parts._replace(query=query.encode())))

    def with_options(self, **options: Any) -> Request:
        """Return a new Request with fetch options (``mode``, ``redirect``...) changed."""
        return replace(self, **options)

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: dict[str, Any], body: bytes = b"") -> Request:
        """Create a Request from an ASGI scope and the fully read body.

        The absolute URL is rebuilt from the scope scheme, the ``Host``
        header (falling back to ``scope["server"]``), root path, path and
        query string.
        """
        headers = Headers(tuple(scope.get("headers", ())))
        scheme = scope.get("scheme", "http")
        host = headers.get("host")
        if host is None:
            server = scope.get("server")
            if server:
                name, port = server
                default_port = 443 if scheme == "https" else 80
                host = name if port in (None, default_port) else f"{name}:{port}"
            else:
                host = "localhost"
        path = scope.get("root_path", "") + scope["path"]
        query = scope.get("query_string", b"").decode("latin-1")
        return cls(
            method=scope["method"],
            url=urlunsplit((scheme, host, path, query, "")),
            headers=headers,
            body=body,
        )


async def read_body(receive: Receive) -> bytes:
    """Read the full ASGI request body."""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        body = message.get("body", b"")
        if body:
            chunks.append(body)
        if not message.get("more_body", False):
            break
    return b"".join(chunks)
