from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bible_reader.core.auth import UserContext
from bible_reader.core.database import init_db
from bible_reader.models import BibleBook, BibleChapter, BibleVerse, HiddenVersion
from bible_reader.services.store import ScriptureStore
from bible_reader.services.verse_fetcher import VerseFetcher

GENESIS = 1
EXODUS = 2
OBADIAH = 3
EMPTY_BOOK = 4

# (id, name, alternate_name, abbreviation, position, chapters)
BOOKS = [
    (GENESIS, "Gênesis", "Genesis", "Gn", 1, 50),
    (EXODUS, "Êxodo", "Exodus", "Êx", 2, 40),
    (OBADIAH, "Obadias", "Obadiah", "Ob", 31, 1),
    (EMPTY_BOOK, "Apêndice", None, "Ap", 99, 0),
    # 重复导入的同名书卷
    (5, "Gênesis", "Genesis", "Gn", 1, 0),
]

# (book_id, chapter_number, version, verse_count)
VERSES = [
    (GENESIS, 1, "ACF", 31),
    (GENESIS, 1, "ARA", 31),
    (GENESIS, 2, "ACF", 25),
    (GENESIS, 50, "ACF", 26),
    (EXODUS, 1, "ACF", 22),
    (OBADIAH, 1, "ACF", 21),
]

HIDDEN_VERSIONS = ["KJF"]


def verse_text(book_id: int, chapter_number: int, version: str, verse_number: int) -> str:
    return f"[{version}] {book_id}:{chapter_number}:{verse_number}"


def seed_scripture(factory: sessionmaker) -> None:
    db = factory()
    try:
        chapter_ids = {}
        for book_id, name, alternate, abbreviation, position, chapters in BOOKS:
            db.add(
                BibleBook(
                    id=book_id,
                    name=name,
                    alternate_name=alternate,
                    abbreviation=abbreviation,
                    position=position,
                    testament="OT",
                )
            )
            db.flush()
            for number in range(1, chapters + 1):
                chapter = BibleChapter(book_id=book_id, chapter_number=number)
                db.add(chapter)
                db.flush()
                chapter_ids[(book_id, number)] = chapter.id

        for book_id, chapter_number, version, count in VERSES:
            # 倒序写入，读取方必须按节号排序
            for number in range(count, 0, -1):
                db.add(
                    BibleVerse(
                        chapter_id=chapter_ids[(book_id, chapter_number)],
                        version=version,
                        verse_number=number,
                        text=verse_text(book_id, chapter_number, version, number),
                    )
                )
        for version in HIDDEN_VERSIONS:
            db.add(HiddenVersion(version=version))
        db.commit()
    finally:
        db.close()


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'scripture.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    seed_scripture(factory)
    return factory


@pytest.fixture
def store(session_factory) -> ScriptureStore:
    return ScriptureStore(session_factory)


@pytest.fixture
def fetcher(store) -> VerseFetcher:
    return VerseFetcher(store)


@pytest.fixture
def user() -> UserContext:
    return UserContext(user_id="user-1", email="leitor@example.com")


@pytest.fixture
def other_user() -> UserContext:
    return UserContext(user_id="user-2", email="outro@example.com")
