from __future__ import annotations

import asyncio

import pytest

from bible_reader.core.errors import (
    BookNotFound,
    ChapterNotFound,
    StoreError,
    VersionNotAvailableForChapter,
)
from bible_reader.services.store import ScriptureStore
from bible_reader.services.verse_fetcher import VerseFetcher
from conftest import EXODUS, GENESIS


class CountingStore(ScriptureStore):
    def __init__(self, session_factory) -> None:
        super().__init__(session_factory)
        self.verse_calls = 0
        self.highlight_calls = 0

    async def get_verses(self, chapter_id, version):
        self.verse_calls += 1
        return await super().get_verses(chapter_id, version)

    async def get_highlights(self, verse_ids, user_id):
        self.highlight_calls += 1
        return await super().get_highlights(verse_ids, user_id)


class FailingStore(ScriptureStore):
    async def get_book(self, book_id):
        raise StoreError("get_book", book_id=book_id)


def test_genesis_one_in_acf(fetcher: VerseFetcher) -> None:
    verses = asyncio.run(fetcher.fetch_verses(GENESIS, 1, "ACF"))
    assert len(verses) == 31
    assert [verse.verse_number for verse in verses] == list(range(1, 32))
    assert {verse.version for verse in verses} == {"ACF"}
    assert verses[0].text == "[ACF] 1:1:1"


def test_fetch_is_idempotent(fetcher: VerseFetcher) -> None:
    first = asyncio.run(fetcher.fetch_verses(EXODUS, 1, "ACF"))
    second = asyncio.run(fetcher.fetch_verses(EXODUS, 1, "ACF"))
    assert first == second


def test_unknown_book(fetcher: VerseFetcher) -> None:
    with pytest.raises(BookNotFound) as exc_info:
        asyncio.run(fetcher.fetch_verses(999, 1, "ACF"))
    assert exc_info.value.kind == "book_not_found"


def test_missing_chapter(fetcher: VerseFetcher) -> None:
    with pytest.raises(ChapterNotFound) as exc_info:
        asyncio.run(fetcher.fetch_verses(GENESIS, 51, "ACF"))
    assert exc_info.value.kind == "chapter_not_found"
    assert exc_info.value.book_name == "Gênesis"


def test_chapter_exists_but_version_has_no_rows(fetcher: VerseFetcher) -> None:
    with pytest.raises(VersionNotAvailableForChapter) as exc_info:
        asyncio.run(fetcher.fetch_verses(GENESIS, 1, "XYZ"))
    assert exc_info.value.kind == "version_not_available"
    assert exc_info.value.message == "This version (XYZ) isn't available yet for chapter 1."


def test_store_failure_is_not_reported_as_missing(session_factory) -> None:
    fetcher = VerseFetcher(FailingStore(session_factory))
    with pytest.raises(StoreError):
        asyncio.run(fetcher.fetch_verses(GENESIS, 1, "ACF"))


def test_verses_cached_per_book_chapter_version(session_factory) -> None:
    store = CountingStore(session_factory)
    fetcher = VerseFetcher(store)

    asyncio.run(fetcher.fetch_verses(GENESIS, 1, "ACF"))
    asyncio.run(fetcher.fetch_verses(GENESIS, 1, "ACF"))
    assert store.verse_calls == 1

    asyncio.run(fetcher.fetch_verses(GENESIS, 1, "ARA"))
    asyncio.run(fetcher.fetch_verses(GENESIS, 2, "ACF"))
    assert store.verse_calls == 3


def test_returned_list_is_a_copy(fetcher: VerseFetcher) -> None:
    verses = asyncio.run(fetcher.fetch_verses(GENESIS, 1, "ACF"))
    verses.clear()
    assert len(asyncio.run(fetcher.fetch_verses(GENESIS, 1, "ACF"))) == 31


def test_highlight_invalidation_keeps_verse_text_cached(session_factory) -> None:
    store = CountingStore(session_factory)
    fetcher = VerseFetcher(store)
    verses = asyncio.run(fetcher.fetch_verses(GENESIS, 1, "ACF"))

    assert asyncio.run(fetcher.fetch_highlight_colors("user-1", verses)) == {}
    asyncio.run(store.insert_highlight(verses[0].id, "user-1", "green"))
    # 未失效前仍命中缓存
    assert asyncio.run(fetcher.fetch_highlight_colors("user-1", verses)) == {}

    assert fetcher.invalidate_highlights() == 1
    assert asyncio.run(fetcher.fetch_highlight_colors("user-1", verses)) == {verses[0].id: "green"}
    asyncio.run(fetcher.fetch_verses(GENESIS, 1, "ACF"))
    assert store.verse_calls == 1
    assert store.highlight_calls == 2


def test_highlight_colors_are_per_user(fetcher: VerseFetcher) -> None:
    verses = asyncio.run(fetcher.fetch_verses(GENESIS, 1, "ACF"))
    asyncio.run(fetcher.store.insert_highlight(verses[4].id, "user-2", "purple"))

    assert asyncio.run(fetcher.fetch_highlight_colors("user-1", verses)) == {}
    assert asyncio.run(fetcher.fetch_highlight_colors("user-2", verses)) == {
        verses[4].id: "purple"
    }
    assert asyncio.run(fetcher.fetch_highlight_colors("user-1", [])) == {}
