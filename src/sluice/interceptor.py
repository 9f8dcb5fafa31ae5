"""The interception layer: classify a request, then answer it.

``Interceptor.handle()`` runs the first-stage rules on the request as
received. Deferred requests are rewritten (version query, same-origin,
manual redirects) and run through the second-stage rules. Each strategy
maps to exactly one way of producing the response:

- offline passthrough: ``fetch_and_cache_offline``
- root: record the root URL, start a background version check, passthrough
- static: ``fetch_and_cache`` into the current version's generation
- virtual module: serve generated source from the registry, recompiling
  the owning component when the entry is missing
- builtin module: synthesize a re-export wrapper, no network
- compile: fetch the source (offline snapshot as fallback) and compile it

Lifecycle hooks mirror a worker's: ``install()`` resolves the version
and precaches, ``activate()`` sweeps stale generations,
``post_message()`` logs diagnostic payloads.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any
from urllib.parse import urljoin

from sluice.cache.generations import ROOT_URL_KEY
from sluice.compiler.kinds import FileKind
from sluice.context import WorkerContext
from sluice.errors import (
    CacheWriteFailure,
    CompilationFailure,
    ManifestError,
    TransientNetworkFailure,
)
from sluice.fetching import fetch_and_cache, fetch_and_cache_offline, precache
from sluice.http.headers import Headers
from sluice.http.request import Request
from sluice.http.response import Response, javascript
from sluice.routing.classifier import (
    FIRST_STAGE_RULES,
    SECOND_STAGE_RULES,
    Strategy,
    classify,
    prepare_deferred,
)

logger = logging.getLogger("sluice.interceptor")

# ``type`` values of the sub-modules a component registers
SUB_MODULE_TYPES = ("script", "template")


def owning_component(request: Request) -> Request | None:
    """The component request whose compile registers *request*, if any.

    ``/a.vue?v=1&type=script`` is owned by ``/a.vue?v=1``.
    """
    if FileKind.from_path(request.path) is not FileKind.COMPONENT:
        return None
    if request.query.get("type") not in SUB_MODULE_TYPES:
        return None
    return request.with_query(request.query.without("type"))


class Interceptor:
    """Answers intercepted requests for one ``WorkerContext``."""

    __slots__ = ("_background", "ctx")

    def __init__(self, ctx: WorkerContext) -> None:
        self.ctx = ctx
        self._background: set[asyncio.Task[Any]] = set()

    # -- Request handling --

    async def handle(self, request: Request) -> Response:
        decision = classify(request, self.ctx.routing(), FIRST_STAGE_RULES)
        logger.debug(
            "%s %s -> %s (%s)", request.method, request.url, decision.strategy.value, decision.rule
        )

        match decision.strategy:
            case Strategy.OFFLINE_PASSTHROUGH:
                logger.info("non-http request passed through: %s", request.url)
                return await self._passthrough(request)
            case Strategy.ROOT:
                return await self._root(request)
            case Strategy.DEFER:
                return await self._second_stage(request)
            case _:
                return await fetch_and_cache(
                    self.ctx.fetcher, self.ctx.caches, request, self.ctx.version
                )

    async def _passthrough(self, request: Request) -> Response:
        return await fetch_and_cache_offline(self.ctx.fetcher, self.ctx.caches, request)

    async def _root(self, request: Request) -> Response:
        logger.info("root url: %s", request.url)
        try:
            await self.ctx.kv.write(ROOT_URL_KEY, request.url)
        except CacheWriteFailure:
            logger.warning("could not record root url %s", request.url, exc_info=True)
        self.spawn(self.ctx.caches.resolve_version())
        return await self._passthrough(request)

    async def _second_stage(self, received: Request) -> Response:
        # Only root, install and activate resolve the version.
        version = self.ctx.version
        request = prepare_deferred(received, version)
        decision = classify(request, self.ctx.routing(), SECOND_STAGE_RULES)
        logger.debug(
            "%s %s -> %s (%s)", request.method, request.url, decision.strategy.value, decision.rule
        )

        match decision.strategy:
            case Strategy.VIRTUAL_MODULE:
                return await self._virtual_module(request)
            case Strategy.STATIC:
                return await fetch_and_cache(self.ctx.fetcher, self.ctx.caches, request, version)
            case Strategy.BUILTIN_MODULE:
                return javascript(self.ctx.compiler.builtin_module(request))
            case _ if owning_component(request) is not None:
                return await self._virtual_module(request)
            case _:
                return await self._compile(request)

    async def _virtual_module(self, request: Request) -> Response:
        """Serve a component sub-module, rebuilding its component on a miss.

        A miss means the entry was evicted, or was registered under
        another version's URL.
        """
        source = self.ctx.registry.get(request.url)
        if source is not None:
            return javascript(source)

        owner = owning_component(request)
        if owner is None:
            raise CompilationFailure(request.url, "no component owns this module")
        logger.info("%s not registered, recompiling %s", request.url, owner.url)
        text = await self._fetch_source(owner)
        if isinstance(text, Response):
            return text

        source = self.ctx.compiler.sub_modules(owner, text).get(request.url)
        if source is None:
            raise CompilationFailure(request.url, f"{owner.url} does not produce this module")
        return javascript(source)

    async def _compile(self, request: Request) -> Response:
        text = await self._fetch_source(request)
        if isinstance(text, Response):
            return text
        return javascript(self.ctx.compiler.compile(request, text))

    async def _fetch_source(self, request: Request) -> str | Response:
        """The source text at *request*, or the upstream response if not a 200."""
        source_request = Request(
            method=request.method,
            url=request.url,
            headers=Headers.from_pairs([("content-type", "text/plain")]),
            mode="no-cors",
        )
        response = await self._passthrough(source_request)
        if response.status != 200:
            return response
        try:
            return response.text
        except UnicodeDecodeError as exc:
            logger.error("%s is not UTF-8 text", request.url)
            raise CompilationFailure(request.url, "source is not UTF-8 text") from exc

    # -- Background work --

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run *coro* without making the current response wait for it."""
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._reap)
        return task

    def _reap(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("background task failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait for every background task started so far."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # -- Lifecycle --

    async def install(self) -> str:
        """Resolve the version and precache into its generation."""
        resolution = await self.ctx.caches.resolve_version()
        urls = tuple(urljoin(self.ctx.config.scope_url, url) for url in self.ctx.config.precache)
        if urls:
            name = self.ctx.caches.versioned_name(resolution.version)
            stored = await precache(self.ctx.fetcher, self.ctx.caches, name, urls)
            logger.info("precached %d of %d urls into %s", stored, len(urls), name)
        return resolution.version

    async def activate(self) -> tuple[str, ...]:
        """Delete every generation the current version does not use."""
        await self.ctx.caches.ensure_version()
        return await self.ctx.caches.sweep()

    async def startup(self) -> None:
        """Install then activate; an unreachable manifest is not fatal."""
        try:
            await self.install()
            await self.activate()
        except (ManifestError, TransientNetworkFailure) as exc:
            logger.warning("startup version check failed, continuing: %s", exc)

    def post_message(self, payload: object) -> None:
        logger.info("message: %r", payload)
