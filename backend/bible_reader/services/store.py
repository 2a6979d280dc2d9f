from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, TypeVar
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from bible_reader.core.database import utc_now
from bible_reader.core.errors import StoreError
from bible_reader.core.schemas import Book, Chapter, Highlight, Note, Verse
from bible_reader.models import (
    BibleBook,
    BibleChapter,
    BibleVerse,
    HiddenVersion,
    VerseHighlight,
    VerseNote,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_highlight(row: VerseHighlight) -> Highlight:
    return Highlight(
        id=row.id,
        verse_id=row.verse_id,
        user_id=row.user_id,
        color=row.highlight_color,
    )


class ScriptureStore:
    """Row-level access to books, chapters, verses and per-user annotations.

    Every call opens its own session and runs in the threadpool, so callers
    on the event loop only ever await. Rows are converted to the typed
    records in ``core.schemas`` before they leave this class; any database
    or validation failure surfaces as ``StoreError``.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    async def _call(self, operation: str, work: Callable[[Session], T], **keys: Any) -> T:
        def run() -> T:
            db = self._session_factory()
            try:
                return work(db)
            except (SQLAlchemyError, ValidationError) as exc:
                db.rollback()
                logger.error(f"Store operation {operation} failed {keys}: {exc}")
                raise StoreError(operation, **keys) from exc
            finally:
                db.close()

        return await run_in_threadpool(run)

    # ---- 只读参考数据 ----

    async def list_books(self) -> list[Book]:
        def work(db: Session) -> list[Book]:
            rows = db.query(BibleBook).order_by(BibleBook.position, BibleBook.id).all()
            seen: set[str] = set()
            books = []
            for row in rows:
                # 导入任务可能为不同译本写入同名书卷，保留正典顺序中的第一条
                if row.name in seen:
                    continue
                seen.add(row.name)
                books.append(Book.model_validate(row))
            return books

        return await self._call("list_books", work)

    async def get_book(self, book_id: int) -> Book | None:
        def work(db: Session) -> Book | None:
            row = db.get(BibleBook, book_id)
            return Book.model_validate(row) if row else None

        return await self._call("get_book", work, book_id=book_id)

    async def get_chapter(self, book_id: int, chapter_number: int) -> Chapter | None:
        def work(db: Session) -> Chapter | None:
            row = (
                db.query(BibleChapter)
                .filter(
                    BibleChapter.book_id == book_id,
                    BibleChapter.chapter_number == chapter_number,
                )
                .first()
            )
            return Chapter.model_validate(row) if row else None

        return await self._call(
            "get_chapter", work, book_id=book_id, chapter_number=chapter_number
        )

    async def get_max_chapter_number(self, book_id: int) -> int | None:
        def work(db: Session) -> int | None:
            value = (
                db.query(func.max(BibleChapter.chapter_number))
                .filter(BibleChapter.book_id == book_id)
                .scalar()
            )
            return int(value) if value is not None else None

        return await self._call("get_max_chapter_number", work, book_id=book_id)

    async def count_verses(self, chapter_id: int, version: str) -> int:
        def work(db: Session) -> int:
            return (
                db.query(BibleVerse)
                .filter(BibleVerse.chapter_id == chapter_id, BibleVerse.version == version)
                .count()
            )

        return await self._call("count_verses", work, chapter_id=chapter_id, version=version)

    async def get_verses(self, chapter_id: int, version: str) -> list[Verse]:
        def work(db: Session) -> list[Verse]:
            rows = (
                db.query(BibleVerse)
                .filter(BibleVerse.chapter_id == chapter_id, BibleVerse.version == version)
                .order_by(BibleVerse.verse_number)
                .all()
            )
            return [Verse.model_validate(row) for row in rows]

        return await self._call("get_verses", work, chapter_id=chapter_id, version=version)

    async def list_hidden_versions(self) -> frozenset[str]:
        def work(db: Session) -> frozenset[str]:
            return frozenset(row.version for row in db.query(HiddenVersion).all())

        return await self._call("list_hidden_versions", work)

    # ---- 用户高亮 ----

    async def get_highlight(self, verse_id: int, user_id: str) -> Highlight | None:
        def work(db: Session) -> Highlight | None:
            row = (
                db.query(VerseHighlight)
                .filter(VerseHighlight.verse_id == verse_id, VerseHighlight.user_id == user_id)
                .order_by(VerseHighlight.created_at.desc())
                .first()
            )
            return _to_highlight(row) if row else None

        return await self._call("get_highlight", work, verse_id=verse_id, user_id=user_id)

    async def get_highlights(self, verse_ids: Iterable[int], user_id: str) -> list[Highlight]:
        ids = sorted(set(verse_ids))

        def work(db: Session) -> list[Highlight]:
            if not ids:
                return []
            rows = (
                db.query(VerseHighlight)
                .filter(VerseHighlight.verse_id.in_(ids), VerseHighlight.user_id == user_id)
                .order_by(VerseHighlight.created_at)
                .all()
            )
            return [_to_highlight(row) for row in rows]

        return await self._call("get_highlights", work, verse_ids=ids, user_id=user_id)

    async def insert_highlight(self, verse_id: int, user_id: str, color: str) -> Highlight:
        def work(db: Session) -> Highlight:
            row = VerseHighlight(
                id=uuid4().hex,
                verse_id=verse_id,
                user_id=user_id,
                highlight_color=color,
                created_at=utc_now(),
            )
            highlight = _to_highlight(row)
            db.add(row)
            db.commit()
            return highlight

        return await self._call(
            "insert_highlight", work, verse_id=verse_id, user_id=user_id, color=color
        )

    async def delete_highlights(self, verse_id: int, user_id: str) -> int:
        def work(db: Session) -> int:
            deleted = (
                db.query(VerseHighlight)
                .filter(VerseHighlight.verse_id == verse_id, VerseHighlight.user_id == user_id)
                .delete(synchronize_session=False)
            )
            db.commit()
            return int(deleted or 0)

        return await self._call("delete_highlights", work, verse_id=verse_id, user_id=user_id)

    # ---- 用户笔记 ----

    async def insert_note(self, verse_id: int, user_id: str, note_text: str) -> Note:
        def work(db: Session) -> Note:
            row = VerseNote(
                id=uuid4().hex,
                verse_id=verse_id,
                user_id=user_id,
                note_text=note_text,
                created_at=utc_now(),
            )
            db.add(row)
            db.commit()
            return Note(
                id=row.id,
                verse_id=row.verse_id,
                user_id=row.user_id,
                note_text=row.note_text,
                created_at=row.created_at.isoformat(),
            )

        return await self._call("insert_note", work, verse_id=verse_id, user_id=user_id)

    async def list_notes(self, chapter_id: int, user_id: str) -> list[Note]:
        def work(db: Session) -> list[Note]:
            rows = (
                db.query(VerseNote, BibleVerse)
                .join(BibleVerse, BibleVerse.id == VerseNote.verse_id)
                .filter(BibleVerse.chapter_id == chapter_id, VerseNote.user_id == user_id)
                .order_by(VerseNote.created_at.desc())
                .all()
            )
            return [
                Note(
                    id=note.id,
                    verse_id=note.verse_id,
                    user_id=note.user_id,
                    note_text=note.note_text,
                    verse_number=verse.verse_number,
                    verse_text=verse.text,
                    created_at=note.created_at.isoformat() if note.created_at else None,
                )
                for note, verse in rows
            ]

        return await self._call("list_notes", work, chapter_id=chapter_id, user_id=user_id)


_store: ScriptureStore | None = None


# FastAPI 依赖：获取经文存储
def get_store() -> ScriptureStore:
    global _store
    if _store is None:
        from bible_reader.core.database import SessionLocal

        _store = ScriptureStore(SessionLocal)
    return _store
