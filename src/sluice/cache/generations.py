"""Generational cache manager.

Owns the three cache families and their lifecycles:

- the static generation (unversioned, long-lived),
- one versioned generation per version (``versioned_prefix + version``),
- the offline generation (last-known-good network responses),

plus the key-value generation used by ``KVStore``.

Eviction is whitelist-driven. A sweep keeps the KV, static and offline
generations and the versioned generation of the current version, and
deletes every other name. Pattern matching on version strings is never
used, so a version bump can only ever rotate the versioned family.
"""

import json
import logging
from dataclasses import dataclass
from urllib.parse import urljoin

import anyio

from sluice.cache.kv import KVStore
from sluice.cache.storage import CacheStorage
from sluice.config import ProxyConfig
from sluice.errors import CacheWriteFailure, ManifestError
from sluice.fetching import Fetcher, fetch_and_cache_offline
from sluice.http.request import Request
from sluice.http.response import Response

logger = logging.getLogger("sluice.cache")

VERSION_KEY = "version"
ROOT_URL_KEY = "rootUrl"


@dataclass(frozen=True, slots=True)
class VersionResolution:
    """Outcome of one ``resolve_version()`` call."""

    version: str
    previous: str | None
    deleted: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return self.version != self.previous


def parse_manifest(response: Response, url: str = "") -> str:
    """Compute the version from a manifest response.

    The manifest is JSON with ``version`` and ``extVersion`` fields; the
    effective version is ``f"{version}.{extVersion}"``.
    """
    if response.status != 200:
        msg = f"version manifest {url} returned {response.status}"
        raise ManifestError(msg)
    try:
        data = response.json()
    except ValueError as exc:
        msg = f"version manifest {url} is not valid JSON"
        raise ManifestError(msg) from exc
    if not isinstance(data, dict) or "version" not in data or "extVersion" not in data:
        msg = f"version manifest {url} needs 'version' and 'extVersion' fields"
        raise ManifestError(msg)
    return f"{data['version']}.{data['extVersion']}"


class GenerationManager:
    """Cache generations, the whitelist, and the current version.

    ``version`` is ``None`` until the first ``resolve_version()``. It only
    changes through an explicit resolution.
    """

    __slots__ = ("_config", "_fetcher", "_kv", "_resolve_lock", "_storage", "version")

    def __init__(
        self,
        storage: CacheStorage,
        kv: KVStore,
        fetcher: Fetcher,
        config: ProxyConfig,
    ) -> None:
        self._storage = storage
        self._kv = kv
        self._fetcher = fetcher
        self._config = config
        self.version: str | None = None
        self._resolve_lock = anyio.Lock()

    # -- Names --

    @property
    def storage(self) -> CacheStorage:
        return self._storage

    @property
    def static_name(self) -> str:
        return self._config.static_cache_name

    @property
    def offline_name(self) -> str:
        return self._config.offline_cache_name

    def versioned_name(self, version: str) -> str:
        return self._config.versioned_prefix + version

    def whitelist(self, version: str | None) -> frozenset[str]:
        """Generation names a sweep for *version* must keep."""
        names = {self._kv.name, self.static_name, self.offline_name}
        if version is not None:
            names.add(self.versioned_name(version))
        return frozenset(names)

    # -- Best-effort access --

    async def match_any(self, request: Request) -> Response | None:
        """Look *request* up in every generation; failures are misses."""
        try:
            return await self._storage.match(request)
        except Exception:
            logger.debug("cache lookup of %s failed", request.url, exc_info=True)
            return None

    async def lookup(self, name: str, request: Request) -> Response | None:
        """Look *request* up in generation *name*; failures are misses."""
        try:
            cache = await self._storage.open(name)
            return await cache.match(request)
        except Exception:
            logger.debug("lookup of %s in %r failed", request.url, name, exc_info=True)
            return None

    async def store(self, name: str, request: Request, response: Response) -> bool:
        """Store *response* in generation *name*.

        Returns False instead of raising when the write fails; the caller
        still has the response to return.
        """
        try:
            cache = await self._storage.open(name)
            await cache.put(request, response)
        except CacheWriteFailure as exc:
            logger.debug("not cached: %s", exc)
            return False
        except Exception:
            logger.warning("caching %s in %r failed", request.url, name, exc_info=True)
            return False
        return True

    # -- Eviction --

    async def delete_absent(self, keep: frozenset[str]) -> tuple[str, ...]:
        """Delete every generation not in *keep*, concurrently.

        Individual failures are logged and do not stop the others.
        Returns the names that were deleted.
        """
        try:
            names = [name for name in await self._storage.keys() if name not in keep]
        except Exception:
            logger.warning("could not list cache generations", exc_info=True)
            return ()

        deleted: set[str] = set()

        async def _delete(name: str) -> None:
            try:
                if await self._storage.delete(name):
                    deleted.add(name)
            except Exception:
                logger.warning("could not delete cache generation %r", name, exc_info=True)

        async with anyio.create_task_group() as tg:
            for name in names:
                tg.start_soon(_delete, name)

        return tuple(name for name in names if name in deleted)

    async def sweep(self) -> tuple[str, ...]:
        """Delete generations outside the whitelist of the current version."""
        keep = self.whitelist(self.version)
        logger.info("sweeping cache generations, keeping %s", sorted(keep))
        return await self.delete_absent(keep)

    # -- Version --

    def manifest_url(self) -> str:
        return urljoin(self._config.scope_url, self._config.version_manifest)

    async def resolve_version(self) -> VersionResolution:
        """Fetch the manifest, adopt its version, and rotate on change.

        On a change every generation outside the new whitelist is deleted
        before the new version is persisted. When the stored version
        already matches, nothing is deleted. Resolutions run one at a
        time.
        """
        async with self._resolve_lock:
            return await self._resolve()

    async def ensure_version(self) -> str:
        """Return the current version, resolving it first if unknown."""
        if self.version is None:
            async with self._resolve_lock:
                if self.version is None:
                    return (await self._resolve()).version
        assert self.version is not None
        return self.version

    async def _resolve(self) -> VersionResolution:
        url = self.manifest_url()
        response = await fetch_and_cache_offline(
            self._fetcher, self, Request("GET", url, cache="no-store")
        )
        version = parse_manifest(response, url)
        self.version = version
        logger.info("current version: %s", version)

        previous = await self._kv.read(VERSION_KEY)
        deleted: tuple[str, ...] = ()
        if previous != version:
            logger.info("version upgrade %s => %s", previous, version)
            deleted = await self.delete_absent(self.whitelist(version))

        try:
            await self._kv.write(VERSION_KEY, version)
        except CacheWriteFailure:
            logger.warning("could not persist version %s", version, exc_info=True)

        return VersionResolution(version=version, previous=previous, deleted=deleted)
