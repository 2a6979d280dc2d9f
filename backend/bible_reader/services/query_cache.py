from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Hashable, Iterable

from bible_reader.core.errors import StoreError

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    fetched_at: float
    tags: frozenset[str]
    invalidated: bool = False


class QueryCache:
    """Keyed cache with a freshness window and a longer retention window.

    Fresh entries are returned without calling the loader. Stale entries
    (past ``fresh_seconds`` or invalidated) trigger a reload; if that reload
    fails with ``StoreError`` the retained value is served instead. Entries
    older than ``retain_seconds`` are dropped.
    """

    def __init__(
        self,
        fresh_seconds: float,
        retain_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.fresh_seconds = fresh_seconds
        self.retain_seconds = max(retain_seconds, fresh_seconds)
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry] = {}

    def __contains__(self, key: Hashable) -> bool:
        return self.peek(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, key: Hashable) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at > self.retain_seconds:
            del self._entries[key]
            return None
        return entry

    def is_fresh(self, entry: CacheEntry) -> bool:
        return not entry.invalidated and self._clock() - entry.fetched_at <= self.fresh_seconds

    async def fetch(
        self,
        key: Hashable,
        loader: Callable[[], Awaitable[Any]],
        tags: Iterable[str] = (),
    ) -> Any:
        entry = self.peek(key)
        if entry is not None and self.is_fresh(entry):
            return entry.value
        try:
            value = await loader()
        except StoreError as exc:
            if entry is None:
                raise
            logger.warning(f"Serving stale cache entry for {key!r}: {exc.message}")
            return entry.value
        self.prune()
        self._entries[key] = CacheEntry(value=value, fetched_at=self._clock(), tags=frozenset(tags))
        return value

    # 清理超过保留时间的条目（每次写入时执行）
    def prune(self) -> int:
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.fetched_at > self.retain_seconds
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def invalidate(self, key: Hashable) -> None:
        entry = self._entries.get(key)
        if entry is not None:
            entry.invalidated = True

    # 按标签标记过期（保留旧值，下次读取时重新拉取）
    def invalidate_tag(self, tag: str) -> int:
        count = 0
        for entry in self._entries.values():
            if tag in entry.tags and not entry.invalidated:
                entry.invalidated = True
                count += 1
        return count

    def clear(self) -> None:
        self._entries.clear()
