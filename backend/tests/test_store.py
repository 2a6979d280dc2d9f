from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bible_reader.core.database import utc_now
from bible_reader.core.errors import StoreError
from bible_reader.models import VerseHighlight
from bible_reader.services.store import ScriptureStore
from conftest import EMPTY_BOOK, EXODUS, GENESIS


def test_list_books_in_canonical_order_without_duplicates(store: ScriptureStore) -> None:
    books = asyncio.run(store.list_books())
    assert [book.name for book in books] == ["Gênesis", "Êxodo", "Obadias", "Apêndice"]
    assert books[0].id == GENESIS
    assert books[0].alternate_name == "Genesis"


def test_max_chapter_number(store: ScriptureStore) -> None:
    assert asyncio.run(store.get_max_chapter_number(GENESIS)) == 50
    assert asyncio.run(store.get_max_chapter_number(EXODUS)) == 40
    assert asyncio.run(store.get_max_chapter_number(EMPTY_BOOK)) is None


def test_get_verses_ordered_by_verse_number(store: ScriptureStore) -> None:
    chapter = asyncio.run(store.get_chapter(GENESIS, 1))
    verses = asyncio.run(store.get_verses(chapter.id, "ACF"))
    assert [verse.verse_number for verse in verses] == list(range(1, 32))
    assert all(verse.chapter_id == chapter.id for verse in verses)
    assert asyncio.run(store.count_verses(chapter.id, "ACF")) == 31
    assert asyncio.run(store.get_verses(chapter.id, "NVT")) == []


def test_missing_rows_return_none(store: ScriptureStore) -> None:
    assert asyncio.run(store.get_book(404)) is None
    assert asyncio.run(store.get_chapter(GENESIS, 51)) is None


def test_hidden_versions(store: ScriptureStore) -> None:
    assert asyncio.run(store.list_hidden_versions()) == frozenset({"KJF"})


def test_delete_highlights_removes_every_row(
    store: ScriptureStore, session_factory: sessionmaker
) -> None:
    chapter = asyncio.run(store.get_chapter(GENESIS, 1))
    verse = asyncio.run(store.get_verses(chapter.id, "ACF"))[0]
    asyncio.run(store.insert_highlight(verse.id, "user-1", "yellow"))
    asyncio.run(store.insert_highlight(verse.id, "user-1", "blue"))
    asyncio.run(store.insert_highlight(verse.id, "user-2", "red"))

    assert len(asyncio.run(store.get_highlights([verse.id], "user-1"))) == 2
    assert asyncio.run(store.delete_highlights(verse.id, "user-1")) == 2
    assert asyncio.run(store.get_highlight(verse.id, "user-1")) is None

    db = session_factory()
    try:
        rows = db.query(VerseHighlight).all()
        assert [(row.user_id, row.highlight_color) for row in rows] == [("user-2", "red")]
    finally:
        db.close()


def test_database_failure_surfaces_as_store_error() -> None:
    # 指向不存在目录的数据库，任何查询都会失败
    broken = create_engine("sqlite:////nonexistent-dir/missing.db", future=True)
    store = ScriptureStore(sessionmaker(bind=broken, future=True))
    with pytest.raises(StoreError) as exc_info:
        asyncio.run(store.list_books())
    assert exc_info.value.kind == "store_error"
    assert exc_info.value.operation == "list_books"


def test_invalid_stored_color_surfaces_as_store_error(
    store: ScriptureStore, session_factory: sessionmaker
) -> None:
    chapter = asyncio.run(store.get_chapter(GENESIS, 1))
    verse = asyncio.run(store.get_verses(chapter.id, "ACF"))[0]
    db = session_factory()
    try:
        db.add(
            VerseHighlight(
                id="legacy", verse_id=verse.id, user_id="user-1", highlight_color="pink"
            )
        )
        db.commit()
    finally:
        db.close()

    with pytest.raises(StoreError):
        asyncio.run(store.get_highlight(verse.id, "user-1"))


def test_notes_listed_for_chapter(store: ScriptureStore) -> None:
    chapter = asyncio.run(store.get_chapter(GENESIS, 1))
    verses = asyncio.run(store.get_verses(chapter.id, "ACF"))
    asyncio.run(store.insert_note(verses[2].id, "user-1", "Luz"))
    asyncio.run(store.insert_note(verses[0].id, "user-2", "Outro leitor"))

    notes = asyncio.run(store.list_notes(chapter.id, "user-1"))
    assert len(notes) == 1
    assert notes[0].note_text == "Luz"
    assert notes[0].verse_number == 3
    assert notes[0].verse_text == verses[2].text


def test_note_timestamps_are_utc(store: ScriptureStore) -> None:
    chapter = asyncio.run(store.get_chapter(GENESIS, 1))
    verse = asyncio.run(store.get_verses(chapter.id, "ACF"))[0]
    note = asyncio.run(store.insert_note(verse.id, "user-1", "Luz"))

    created_at = datetime.fromisoformat(note.created_at).replace(tzinfo=None)
    assert abs(utc_now().replace(tzinfo=None) - created_at) < timedelta(minutes=1)
