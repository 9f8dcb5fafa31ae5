"""Tests for sluice.cache.kv: the key-value store on top of a generation."""

import pytest

from sluice.cache.kv import KV_ORIGIN, KVStore, key_url
from sluice.cache.storage import MemoryCacheStorage
from sluice.errors import CacheWriteFailure
from sluice.http.request import Request


class _BrokenStorage(MemoryCacheStorage):
    async def open(self, name: str):  # type: ignore[override]
        msg = "disk is gone"
        raise OSError(msg)


class TestKeyUrl:
    def test_synthetic_origin(self) -> None:
        assert key_url("version") == f"{KV_ORIGIN}/version"

    def test_key_is_quoted(self) -> None:
        assert key_url("a/b c") == f"{KV_ORIGIN}/a%2Fb%20c"


class TestKVStore:
    async def test_missing_key_is_none(self) -> None:
        kv = KVStore(MemoryCacheStorage(), "SWHelperCache")
        assert await kv.read("version") is None
        assert await kv.read_bytes("version") is None

    async def test_write_then_read(self) -> None:
        kv = KVStore(MemoryCacheStorage(), "SWHelperCache")
        await kv.write("rootUrl", "http://testserver/")
        assert await kv.read("rootUrl") == "http://testserver/"

    async def test_bytes_round_trip(self) -> None:
        kv = KVStore(MemoryCacheStorage(), "SWHelperCache")
        await kv.write("blob", b"\x00\xff")
        assert await kv.read_bytes("blob") == b"\x00\xff"
        assert await kv.read("blob") is None

    async def test_overwrite(self) -> None:
        kv = KVStore(MemoryCacheStorage(), "SWHelperCache")
        await kv.write("version", "1.2.2")
        await kv.write("version", "1.2.3")
        assert await kv.read("version") == "1.2.3"

    async def test_lives_in_its_own_generation(self) -> None:
        storage = MemoryCacheStorage()
        kv = KVStore(storage, "SWHelperCache")
        await kv.write("version", "1.0")

        assert await storage.keys() == ["SWHelperCache"]
        cache = await storage.open("SWHelperCache")
        hit = await cache.match(Request("GET", key_url("version")))
        assert hit is not None and hit.text == "1.0"

    async def test_read_failure_is_a_miss(self) -> None:
        kv = KVStore(_BrokenStorage(), "SWHelperCache")
        assert await kv.read("version") is None

    async def test_write_failure_raises(self) -> None:
        kv = KVStore(_BrokenStorage(), "SWHelperCache")
        with pytest.raises(CacheWriteFailure, match="disk is gone"):
            await kv.write("version", "1.0")
