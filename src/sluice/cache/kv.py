"""A durable key-value store built on a cache generation.

Small metadata (the current version string, the observed root URL)
lives in a dedicated generation. Each key is addressed through a
synthetic URL so the generation's request-keyed primitive can hold it.
"""

import logging
from urllib.parse import quote

from sluice.cache.storage import CacheStorage
from sluice.errors import CacheWriteFailure
from sluice.http.request import Request
from sluice.http.response import Response

logger = logging.getLogger("sluice.cache")

KV_ORIGIN = "https://LOCALCACHE"


def key_url(key: str) -> str:
    """The synthetic URL a key is stored under."""
    return f"{KV_ORIGIN}/{quote(key, safe='')}"


class KVStore:
    """Read/write string and byte values by key.

    Reads never raise: a missing key or a storage failure yields ``None``.
    Writes raise ``CacheWriteFailure`` when the value could not be stored.
    """

    __slots__ = ("_name", "_storage")

    def __init__(self, storage: CacheStorage, name: str) -> None:
        self._storage = storage
        self._name = name

    @property
    def name(self) -> str:
        """Name of the backing cache generation."""
        return self._name

    async def _match(self, key: str) -> Response | None:
        try:
            cache = await self._storage.open(self._name)
            return await cache.match(Request("GET", key_url(key)))
        except Exception:
            logger.debug("kv read of %r failed; treating as a miss", key, exc_info=True)
            return None

    async def read(self, key: str) -> str | None:
        response = await self._match(key)
        if response is None:
            return None
        try:
            return response.text
        except UnicodeDecodeError:
            return None

    async def read_bytes(self, key: str) -> bytes | None:
        response = await self._match(key)
        return None if response is None else response.body_bytes

    async def write(self, key: str, value: str | bytes) -> None:
        try:
            cache = await self._storage.open(self._name)
            await cache.put(
                Request("GET", key_url(key)),
                Response(body=value, content_type="application/octet-stream"),
            )
        except CacheWriteFailure:
            raise
        except Exception as exc:
            msg = f"kv write of {key!r} failed: {exc}"
            raise CacheWriteFailure(msg) from exc
