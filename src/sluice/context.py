"""The long-lived worker context.

Everything that outlives a single request (cache storage, key-value
store, generation manager with the current version, virtual module
registry, fetcher, compiler) is created once per app and handed to the
interceptor explicitly. Nothing is recreated mid-request.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from sluice.cache.generations import GenerationManager
from sluice.cache.kv import KVStore
from sluice.cache.storage import CacheStorage, open_storage
from sluice.compiler.pipeline import Compiler
from sluice.compiler.toolchain import MISSING_TOOLCHAIN, Toolchain
from sluice.config import ProxyConfig
from sluice.fetching import Fetcher, HttpxFetcher
from sluice.registry import VirtualModuleRegistry
from sluice.routing.classifier import RoutingContext


@dataclass(slots=True)
class WorkerContext:
    config: ProxyConfig
    storage: CacheStorage
    kv: KVStore
    caches: GenerationManager
    registry: VirtualModuleRegistry
    fetcher: Fetcher
    compiler: Compiler

    @classmethod
    def create(
        cls,
        config: ProxyConfig,
        *,
        storage: CacheStorage | None = None,
        fetcher: Fetcher | None = None,
        toolchain: Toolchain | None = None,
        clock: Callable[[], float] = time.time,
    ) -> WorkerContext:
        """Wire up a context; anything not passed is built from *config*."""
        storage = storage if storage is not None else open_storage(config.cache_path)
        fetcher = fetcher or HttpxFetcher(config.upstream, timeout=config.request_timeout)
        kv = KVStore(storage, config.kv_cache_name)
        registry = VirtualModuleRegistry(config.virtual_module_limit)
        return cls(
            config=config,
            storage=storage,
            kv=kv,
            caches=GenerationManager(storage, kv, fetcher, config),
            registry=registry,
            fetcher=fetcher,
            compiler=Compiler(toolchain or MISSING_TOOLCHAIN, registry, config, clock=clock),
        )

    @property
    def version(self) -> str | None:
        return self.caches.version

    def routing(self) -> RoutingContext:
        """Snapshot of what the classifier may consult."""
        return RoutingContext(
            scope_url=self.config.scope_url,
            builtin_prefix=self.config.builtin_prefix,
            version=self.caches.version,
            virtual_modules=self.registry,
        )
