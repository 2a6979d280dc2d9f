from __future__ import annotations

import logging

from bible_reader.core.config import settings
from bible_reader.core.errors import StoreError
from bible_reader.services.store import ScriptureStore

logger = logging.getLogger(__name__)


class NavigationState:
    """Shared (book, chapter) position of a reader.

    ``max_chapters`` comes from the highest chapter row of the selected book.
    Lookup failures fall back to ``settings.fallback_max_chapters`` so reading
    is never blocked. Once a recomputation settles, an out-of-range chapter
    resets to 1.
    """

    def __init__(
        self,
        store: ScriptureStore,
        book_id: int = 1,
        chapter_number: int = 1,
        fallback_max_chapters: int | None = None,
    ) -> None:
        self._store = store
        self.fallback_max_chapters = fallback_max_chapters or settings.fallback_max_chapters
        self.selected_book_id = book_id
        self.chapter_number = max(1, chapter_number)
        self.max_chapters = self.fallback_max_chapters
        self._bounds_seq = 0

    @property
    def has_next(self) -> bool:
        return self.chapter_number < self.max_chapters

    @property
    def has_previous(self) -> bool:
        return self.chapter_number > 1

    async def select_book(self, book_id: int) -> None:
        self.selected_book_id = book_id
        self.chapter_number = 1
        await self.refresh_bounds()

    async def refresh_bounds(self) -> None:
        self._bounds_seq += 1
        seq = self._bounds_seq
        book_id = self.selected_book_id
        try:
            value = await self._store.get_max_chapter_number(book_id)
        except StoreError as exc:
            logger.warning(f"Chapter count lookup failed for book {book_id}: {exc.message}")
            value = None

        # 期间又选择了其他书卷，结果作废
        if seq != self._bounds_seq:
            logger.debug(f"Discarding chapter count for superseded book {book_id}")
            return
        if not value or value < 1:
            logger.warning(
                f"No chapter count for book {book_id}, using {self.fallback_max_chapters}"
            )
            value = self.fallback_max_chapters
        self.max_chapters = value
        if not 1 <= self.chapter_number <= self.max_chapters:
            self.chapter_number = 1

    def next_chapter(self) -> bool:
        if self.chapter_number < self.max_chapters:
            self.chapter_number += 1
            return True
        return False

    def previous_chapter(self) -> bool:
        if self.chapter_number > 1:
            self.chapter_number -= 1
            return True
        return False

    def select_chapter(self, chapter_number: int) -> bool:
        if not 1 <= chapter_number <= self.max_chapters:
            return False
        changed = chapter_number != self.chapter_number
        self.chapter_number = chapter_number
        return changed
