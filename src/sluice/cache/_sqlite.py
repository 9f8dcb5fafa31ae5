"""The SQLite connection behind ``SqliteCacheStorage``.

Every generation shares one ``sqlite3`` connection. Statements run in an
anyio worker thread so a cache lookup never blocks the event loop, and
they run one at a time: a sweep deletes generations concurrently, and a
single connection must not be driven from two threads at once.

Each call executes and fetches in the same thread hop, so no cursor
outlives the lock.
"""

import sqlite3
from collections.abc import Callable, Sequence
from typing import Any

import anyio

type Row = tuple[Any, ...]


class CacheConnection:
    """A serialized, async view of one ``sqlite3.Connection``.

    The connection is opened in autocommit mode: cache writes are
    independent and never grouped into a transaction.
    """

    __slots__ = ("_conn", "_lock")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = anyio.Lock()

    async def _call[T](self, func: Callable[[], T]) -> T:
        async with self._lock:
            return await anyio.to_thread.run_sync(func)

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement; returns the number of rows it touched."""
        return await self._call(lambda: self._conn.execute(sql, params).rowcount)

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        return await self._call(lambda: self._conn.execute(sql, params).fetchone())

    async def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        return await self._call(lambda: self._conn.execute(sql, params).fetchall())

    async def executescript(self, sql: str) -> None:
        await self._call(lambda: self._conn.executescript(sql))

    async def close(self) -> None:
        await self._call(self._conn.close)


async def open_connection(path: str) -> CacheConnection:
    """Open the cache database at *path* (``":memory:"`` works too)."""
    conn = await anyio.to_thread.run_sync(
        lambda: sqlite3.connect(path, autocommit=True, check_same_thread=False)
    )
    return CacheConnection(conn)
