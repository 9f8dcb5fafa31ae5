"""Sluice application class.

Mutable during setup (middleware, lifecycle hooks). Frozen when the
first lifespan or HTTP scope arrives: the config is validated and the
worker context and interceptor are built exactly once.
"""

import inspect
import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from sluice._internal.asgi import Receive, Scope, Send
from sluice.cache.storage import CacheStorage
from sluice.compiler.toolchain import Toolchain
from sluice.config import ProxyConfig
from sluice.context import WorkerContext
from sluice.fetching import Fetcher
from sluice.interceptor import Interceptor
from sluice.middleware.protocol import Middleware
from sluice.server.handler import handle_request

logger = logging.getLogger("sluice.server")


class App:
    """The sluice proxy application.

    Usage::

        from sluice import App, ProxyConfig
        from sluice.compiler import Toolchain

        app = App(
            ProxyConfig(upstream="http://127.0.0.1:5173", scope_url="http://127.0.0.1:8000/"),
            toolchain=Toolchain(transpiler, component_toolkit),
        )
        app.run()

    ``storage`` and ``fetcher`` default to what the config describes
    (memory or SQLite generations; httpx against ``config.upstream``).

    Thread safety:
        The freeze transition uses a Lock + double-check so exactly one
        thread builds the worker context.
    """

    __slots__ = (
        "_clock",
        "_context",
        "_fetcher",
        "_freeze_lock",
        "_frozen",
        "_interceptor",
        "_middleware",
        "_middleware_list",
        "_shutdown_hooks",
        "_startup_hooks",
        "_storage",
        "_toolchain",
        "config",
    )

    def __init__(
        self,
        config: ProxyConfig | None = None,
        *,
        toolchain: Toolchain | None = None,
        storage: CacheStorage | None = None,
        fetcher: Fetcher | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config: ProxyConfig = config or ProxyConfig()
        self._toolchain = toolchain
        self._storage = storage
        self._fetcher = fetcher
        self._clock = clock
        self._middleware_list: list[Middleware] = []
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._context: WorkerContext | None = None
        self._interceptor: Interceptor | None = None
        self._middleware: tuple[Middleware, ...] = ()

    # -- Setup --

    def add_middleware(self, middleware: Middleware) -> None:
        """Wrap the interceptor in *middleware* (first added runs outermost)."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook that runs after install/activate at startup."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook that runs before storage is closed."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Runtime state --

    @property
    def context(self) -> WorkerContext:
        self._ensure_frozen()
        assert self._context is not None
        return self._context

    @property
    def interceptor(self) -> Interceptor:
        self._ensure_frozen()
        assert self._interceptor is not None
        return self._interceptor

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Start serving with pounce (single worker)."""
        self._ensure_frozen()

        from sluice.server.serve import run_server

        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=self.config.debug,
        )

    # -- Lifecycle --

    async def startup(self) -> None:
        """Open storage, install and activate, then run startup hooks."""
        context = self.context
        await context.storage.connect()
        await self.interceptor.startup()
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        """Run shutdown hooks, finish background work, release resources."""
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result
        context = self.context
        await self.interceptor.drain()
        aclose = getattr(context.fetcher, "aclose", None)
        if aclose is not None:
            await aclose()
        await context.storage.close()

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan directly, then delegates HTTP scopes to the
        request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()

        assert self._interceptor is not None

        await handle_request(
            scope,
            receive,
            send,
            interceptor=self._interceptor,
            middleware=self._middleware,
            message_path=self.config.message_path,
            debug=self.config.debug,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        An invalid config surfaces here as ``lifespan.startup.failed``.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Build the runtime state. MUST only be called while holding _freeze_lock."""
        self.config.validate()
        self._context = WorkerContext.create(
            self.config,
            storage=self._storage,
            fetcher=self._fetcher,
            toolchain=self._toolchain,
            clock=self._clock,
        )
        self._interceptor = Interceptor(self._context)
        self._middleware = tuple(self._middleware_list)
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register middleware and hooks before calling app.run()."
            )
            raise RuntimeError(msg)
