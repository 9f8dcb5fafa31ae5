"""Named cache generations.

A generation is a named, persistent collection of request URL → response
pairs. Generations are created lazily by ``open()`` and are only ever
destroyed wholesale by ``delete()``; that is the unit of eviction the
generational cache manager works with.

Two backends share one protocol:

- ``MemoryCacheStorage`` keeps generations for the life of the process.
- ``SqliteCacheStorage`` keeps them in one SQLite file so versions and
  offline snapshots survive a restart.

Only ``GET`` requests are matched or stored. Lookups for any other
method are misses; writes raise ``CacheWriteFailure``.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Protocol

import anyio

from sluice.cache._sqlite import CacheConnection, open_connection
from sluice.errors import CacheWriteFailure
from sluice.http.request import Request
from sluice.http.response import Response


class Cache(Protocol):
    """One cache generation."""

    name: str

    async def match(self, request: Request) -> Response | None: ...

    async def put(self, request: Request, response: Response) -> None: ...

    async def delete(self, request: Request) -> bool: ...

    async def keys(self) -> list[str]: ...


class CacheStorage(Protocol):
    """The set of all cache generations."""

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def open(self, name: str) -> Cache: ...

    async def has(self, name: str) -> bool: ...

    async def delete(self, name: str) -> bool: ...

    async def keys(self) -> list[str]: ...

    async def match(self, request: Request) -> Response | None: ...


def _check_storable(request: Request) -> None:
    if request.method != "GET":
        msg = f"cannot cache {request.method} {request.url}: only GET requests are stored"
        raise CacheWriteFailure(msg)


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class MemoryCache:
    """A generation held in a plain dict."""

    __slots__ = ("_entries", "_storage", "name")

    def __init__(self, name: str, entries: dict[str, Response], storage: MemoryCacheStorage) -> None:
        self.name = name
        self._entries = entries
        self._storage = storage

    async def match(self, request: Request) -> Response | None:
        if request.method != "GET":
            return None
        return self._entries.get(request.url)

    async def put(self, request: Request, response: Response) -> None:
        _check_storable(request)
        if self._storage._generations.get(self.name) is not self._entries:
            msg = f"cache generation {self.name!r} was deleted"
            raise CacheWriteFailure(msg)
        self._entries[request.url] = response

    async def delete(self, request: Request) -> bool:
        return self._entries.pop(request.url, None) is not None

    async def keys(self) -> list[str]:
        return list(self._entries)


class MemoryCacheStorage:
    """Cache generations that live as long as the process."""

    __slots__ = ("_generations",)

    def __init__(self) -> None:
        self._generations: dict[str, dict[str, Response]] = {}

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def open(self, name: str) -> MemoryCache:
        entries = self._generations.setdefault(name, {})
        return MemoryCache(name, entries, self)

    async def has(self, name: str) -> bool:
        return name in self._generations

    async def delete(self, name: str) -> bool:
        return self._generations.pop(name, None) is not None

    async def keys(self) -> list[str]:
        return list(self._generations)

    async def match(self, request: Request) -> Response | None:
        if request.method != "GET":
            return None
        for entries in list(self._generations.values()):
            response = entries.get(request.url)
            if response is not None:
                return response
        return None


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS generations (
    name TEXT PRIMARY KEY,
    created_at REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS entries (
    generation TEXT NOT NULL,
    url TEXT NOT NULL,
    status INTEGER NOT NULL,
    content_type TEXT NOT NULL,
    headers TEXT NOT NULL,
    body BLOB NOT NULL,
    stored_at REAL NOT NULL,
    PRIMARY KEY (generation, url)
);
"""


def _row_to_response(row: tuple) -> Response:
    status, content_type, headers, body = row
    return Response(
        body=bytes(body),
        status=status,
        content_type=content_type,
        headers=tuple((name, value) for name, value in json.loads(headers)),
    )


class SqliteCache:
    """A generation stored as rows of the ``entries`` table."""

    __slots__ = ("_storage", "name")

    def __init__(self, name: str, storage: SqliteCacheStorage) -> None:
        self.name = name
        self._storage = storage

    async def match(self, request: Request) -> Response | None:
        if request.method != "GET":
            return None
        conn = await self._storage.connection()
        row = await conn.fetchone(
            "SELECT status, content_type, headers, body FROM entries "
            "WHERE generation = ? AND url = ?",
            (self.name, request.url),
        )
        return _row_to_response(row) if row else None

    async def put(self, request: Request, response: Response) -> None:
        _check_storable(request)
        if not await self._storage.has(self.name):
            msg = f"cache generation {self.name!r} was deleted"
            raise CacheWriteFailure(msg)
        conn = await self._storage.connection()
        await conn.execute(
            "INSERT OR REPLACE INTO entries "
            "(generation, url, status, content_type, headers, body, stored_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                self.name,
                request.url,
                response.status,
                response.content_type,
                json.dumps(list(response.headers)),
                response.body_bytes,
                time.time(),
            ),
        )

    async def delete(self, request: Request) -> bool:
        conn = await self._storage.connection()
        removed = await conn.execute(
            "DELETE FROM entries WHERE generation = ? AND url = ?",
            (self.name, request.url),
        )
        return removed > 0

    async def keys(self) -> list[str]:
        conn = await self._storage.connection()
        rows = await conn.fetchall(
            "SELECT url FROM entries WHERE generation = ? ORDER BY stored_at",
            (self.name,),
        )
        return [url for (url,) in rows]


class SqliteCacheStorage:
    """Cache generations persisted in a single SQLite file.

    The connection is opened on first use (or by ``connect()`` during
    app startup) and shared by every generation.
    """

    __slots__ = ("_conn", "_connect_lock", "_path")

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: CacheConnection | None = None
        self._connect_lock = anyio.Lock()

    async def connect(self) -> None:
        await self.connection()

    async def connection(self) -> CacheConnection:
        if self._conn is not None:
            return self._conn
        async with self._connect_lock:
            if self._conn is None:
                conn = await open_connection(self._path)
                await conn.executescript(_SCHEMA)
                self._conn = conn
        return self._conn

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def ensure_generation(self, name: str) -> None:
        conn = await self.connection()
        await conn.execute(
            "INSERT OR IGNORE INTO generations (name, created_at) VALUES (?, ?)",
            (name, time.time()),
        )

    async def open(self, name: str) -> SqliteCache:
        await self.ensure_generation(name)
        return SqliteCache(name, self)

    async def has(self, name: str) -> bool:
        conn = await self.connection()
        row = await conn.fetchone("SELECT 1 FROM generations WHERE name = ?", (name,))
        return row is not None

    async def delete(self, name: str) -> bool:
        conn = await self.connection()
        await conn.execute("DELETE FROM entries WHERE generation = ?", (name,))
        return await conn.execute("DELETE FROM generations WHERE name = ?", (name,)) > 0

    async def keys(self) -> list[str]:
        conn = await self.connection()
        rows = await conn.fetchall("SELECT name FROM generations ORDER BY rowid")
        return [name for (name,) in rows]

    async def match(self, request: Request) -> Response | None:
        if request.method != "GET":
            return None
        conn = await self.connection()
        row = await conn.fetchone(
            "SELECT e.status, e.content_type, e.headers, e.body "
            "FROM entries e JOIN generations g ON g.name = e.generation "
            "WHERE e.url = ? ORDER BY g.rowid LIMIT 1",
            (request.url,),
        )
        return _row_to_response(row) if row else None


def open_storage(path: str | Path | None) -> CacheStorage:
    """Pick the backend: SQLite when *path* is given, memory otherwise."""
    if path is None:
        return MemoryCacheStorage()
    return SqliteCacheStorage(path)
