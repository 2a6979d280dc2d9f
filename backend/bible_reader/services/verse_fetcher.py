from __future__ import annotations

import logging
from typing import Sequence

from bible_reader.core.config import settings
from bible_reader.core.errors import BookNotFound, ChapterNotFound, VersionNotAvailableForChapter
from bible_reader.core.schemas import Verse
from bible_reader.services.query_cache import QueryCache
from bible_reader.services.store import ScriptureStore, get_store

logger = logging.getLogger(__name__)

# 经文正文缓存标签
VERSES_TAG = "verses"
# 经文高亮状态缓存标签（高亮变更后整体失效）
HIGHLIGHTS_TAG = "verse-highlights"


def new_verse_cache() -> QueryCache:
    return QueryCache(
        fresh_seconds=settings.verse_cache_fresh_seconds,
        retain_seconds=settings.verse_cache_retain_seconds,
    )


class VerseFetcher:
    def __init__(self, store: ScriptureStore, cache: QueryCache | None = None) -> None:
        self.store = store
        self.cache = cache or new_verse_cache()

    async def fetch_verses(self, book_id: int, chapter_number: int, version_code: str) -> list[Verse]:
        key = (VERSES_TAG, book_id, chapter_number, version_code)
        verses = await self.cache.fetch(
            key,
            lambda: self._load_verses(book_id, chapter_number, version_code),
            tags=(VERSES_TAG,),
        )
        return list(verses)

    async def _load_verses(
        self, book_id: int, chapter_number: int, version_code: str
    ) -> tuple[Verse, ...]:
        book = await self.store.get_book(book_id)
        if book is None:
            raise BookNotFound(book_id)
        chapter = await self.store.get_chapter(book_id, chapter_number)
        if chapter is None:
            raise ChapterNotFound(book.name, chapter_number)

        # 仅用于诊断日志
        count = await self.store.count_verses(chapter.id, version_code)
        logger.debug(
            f"Fetching {book.name} {chapter_number} ({version_code}): "
            f"chapter_id={chapter.id} verse_count={count}"
        )

        verses = await self.store.get_verses(chapter.id, version_code)
        if not verses:
            raise VersionNotAvailableForChapter(version_code, chapter_number)
        return tuple(verses)

    async def fetch_highlight_colors(self, user_id: str, verses: Sequence[Verse]) -> dict[int, str]:
        if not verses:
            return {}
        first = verses[0]
        key = (HIGHLIGHTS_TAG, user_id, first.chapter_id, first.version)
        verse_ids = [verse.id for verse in verses]

        async def load() -> dict[int, str]:
            colors: dict[int, str] = {}
            # 按创建时间升序，最新的一行覆盖旧行
            for highlight in await self.store.get_highlights(verse_ids, user_id):
                colors[highlight.verse_id] = highlight.color
            return colors

        colors = await self.cache.fetch(key, load, tags=(HIGHLIGHTS_TAG,))
        return dict(colors)

    def invalidate_highlights(self) -> int:
        return self.cache.invalidate_tag(HIGHLIGHTS_TAG)


_verse_fetcher: VerseFetcher | None = None


# FastAPI 依赖：进程内共享的经文获取器（缓存跨会话共享）
def get_verse_fetcher() -> VerseFetcher:
    global _verse_fetcher
    if _verse_fetcher is None:
        _verse_fetcher = VerseFetcher(get_store())
    return _verse_fetcher
