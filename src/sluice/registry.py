"""Virtual module registry.

Maps a synthesized module URL to generated source. The component
compiler registers one entry per sub-module (``type=script``,
``type=template``); the interceptor serves them before anything else
in the second classification stage.

Entries live in memory only. The registry is bounded: once ``limit``
entries exist, the least recently used one is evicted. Concurrent
compiles of the same component are not deduplicated, so the last write
for a URL wins.
"""

from collections import OrderedDict


class VirtualModuleRegistry:
    """A bounded LRU map of synthesized URL → module source."""

    __slots__ = ("_entries", "_limit")

    def __init__(self, limit: int | None = 512) -> None:
        self._entries: OrderedDict[str, str] = OrderedDict()
        self._limit = limit

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, url: str) -> str | None:
        source = self._entries.get(url)
        if source is not None:
            self._entries.move_to_end(url)
        return source

    def set(self, url: str, source: str) -> None:
        self._entries[url] = source
        self._entries.move_to_end(url)
        if self._limit is not None:
            while len(self._entries) > self._limit:
                self._entries.popitem(last=False)

    def urls(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
