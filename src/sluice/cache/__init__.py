"""Cache generations, the key-value store, and the generational manager.

Two storage backends::

    MemoryCacheStorage()                      # process lifetime
    SqliteCacheStorage("sluice.sqlite3")      # survives restarts
"""

from sluice.cache.generations import GenerationManager, VersionResolution, parse_manifest
from sluice.cache.kv import KVStore
from sluice.cache.storage import (
    Cache,
    CacheStorage,
    MemoryCacheStorage,
    SqliteCacheStorage,
    open_storage,
)

__all__ = [
    "Cache",
    "CacheStorage",
    "GenerationManager",
    "KVStore",
    "MemoryCacheStorage",
    "SqliteCacheStorage",
    "VersionResolution",
    "open_storage",
    "parse_manifest",
]
