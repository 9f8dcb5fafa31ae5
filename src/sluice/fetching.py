"""Network access and the two caching fetch strategies.

``Fetcher`` is the narrow seam to the network. ``HttpxFetcher`` forwards
an intercepted request to the upstream origin with httpx and turns
transport failures into ``TransientNetworkFailure``.

On top of it:

- ``fetch_and_cache`` serves any cached match, otherwise fetches and
  stores ``200`` responses in the versioned (or static) generation.
- ``fetch_and_cache_offline`` always goes to the network, snapshots
  ``200`` responses into the offline generation, and answers from that
  snapshot when the proxy is offline.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlsplit, urlunsplit

import httpx

from sluice.errors import TransientNetworkFailure
from sluice.http.request import Request
from sluice.http.response import Response

if TYPE_CHECKING:
    from sluice.cache.generations import GenerationManager

logger = logging.getLogger("sluice.fetch")

# Never forwarded upstream
_REQUEST_DROP = ("host", "content-length", "connection", "keep-alive", "transfer-encoding")

# httpx has already decoded and de-chunked the body
_RESPONSE_DROP = frozenset(
    {
        "content-type",
        "content-length",
        "content-encoding",
        "transfer-encoding",
        "connection",
        "keep-alive",
    }
)


class Fetcher(Protocol):
    """Anything that can perform a network request.

    Raises ``TransientNetworkFailure`` when the network is unreachable.
    """

    async def fetch(self, request: Request) -> Response: ...


class HttpxFetcher:
    """Forward requests to the upstream origin over httpx.

    The request URL's scheme and host are replaced by the upstream's; the
    upstream path (if any) is prefixed to the request path. Connection
    failures (refused, DNS, connect timeout) are reported as offline.

    Usage::

        fetcher = HttpxFetcher("http://127.0.0.1:5173")
        response = await fetcher.fetch(Request("GET", "http://proxy/app.ts"))
        await fetcher.aclose()
    """

    __slots__ = ("_client", "_owns_client", "_upstream")

    def __init__(
        self,
        upstream: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._upstream = urlsplit(upstream)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def upstream_url(self, url: str) -> str:
        """Map an intercepted URL onto the upstream origin."""
        parts = urlsplit(url)
        if not parts.scheme.startswith("http"):
            return url
        base = self._upstream.path.rstrip("/")
        return urlunsplit(
            (self._upstream.scheme, self._upstream.netloc, base + parts.path, parts.query, "")
        )

    async def fetch(self, request: Request) -> Response:
        url = self.upstream_url(request.url)
        headers = request.headers.without(*_REQUEST_DROP).pairs()
        if request.cache == "no-store":
            headers.append(("cache-control", "no-store"))
        try:
            upstream = await self._client.request(
                request.method,
                url,
                headers=headers,
                content=request.body or None,
                follow_redirects=request.redirect != "manual",
            )
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise TransientNetworkFailure(request.url, str(exc), offline=True) from exc
        except httpx.TransportError as exc:
            raise TransientNetworkFailure(request.url, str(exc)) from exc

        return Response(
            body=upstream.content,
            status=upstream.status_code,
            content_type=upstream.headers.get("content-type", "application/octet-stream"),
            headers=tuple(
                (name, value)
                for name, value in upstream.headers.multi_items()
                if name.lower() not in _RESPONSE_DROP
            ),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


async def fetch_and_cache(
    fetcher: Fetcher,
    caches: GenerationManager,
    request: Request,
    version: str | None = None,
) -> Response:
    """Serve from any generation, or fetch and cache a ``200`` response.

    The response is stored in the versioned generation for *version*,
    or in the static generation when no version is given. Other
    statuses are returned without caching.
    """
    cached = await caches.match_any(request)
    if cached is not None:
        return cached

    response = await fetcher.fetch(request)
    if response.status == 200:
        name = caches.versioned_name(version) if version else caches.static_name
        await caches.store(name, request, response)
    return response


async def fetch_and_cache_offline(
    fetcher: Fetcher,
    caches: GenerationManager,
    request: Request,
) -> Response:
    """Fetch from the network, keeping a snapshot for offline use.

    When the fetch fails because the proxy is offline, the last snapshot
    of the same request is returned instead. Any other failure, or an
    offline failure with no snapshot, propagates.
    """
    try:
        response = await fetcher.fetch(request)
    except TransientNetworkFailure as exc:
        if not exc.offline:
            raise
        snapshot = await caches.lookup(caches.offline_name, request)
        if snapshot is None:
            raise
        logger.info("offline, serving snapshot of %s", request.url)
        return snapshot

    if response.status == 200 and request.is_network:
        await caches.store(caches.offline_name, request, response)
    return response


async def precache(
    fetcher: Fetcher,
    caches: GenerationManager,
    name: str,
    urls: tuple[str, ...],
) -> int:
    """Fetch *urls* into generation *name*. Returns how many were stored."""
    stored = 0
    for url in urls:
        request = Request("GET", url)
        try:
            response = await fetcher.fetch(request)
        except TransientNetworkFailure as exc:
            logger.warning("precache of %s failed: %s", url, exc)
            continue
        if response.status != 200:
            logger.warning("precache of %s returned %d, not stored", url, response.status)
            continue
        if await caches.store(name, request, response):
            stored += 1
    return stored
