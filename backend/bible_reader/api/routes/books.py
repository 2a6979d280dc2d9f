from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from bible_reader.core.auth import UserContext, get_current_user, get_optional_user
from bible_reader.core.config import settings
from bible_reader.core.errors import BookNotFound, ChapterNotFound, ReaderError, to_http_exception
from bible_reader.core.schemas import Book, ChapterCountResponse, Note, VerseListResponse
from bible_reader.core.versions import book_display_name, normalize_version_code
from bible_reader.services.store import ScriptureStore, get_store
from bible_reader.services.verse_fetcher import VerseFetcher, get_verse_fetcher


# API 路由器：书卷/章节/经文只读接口
router = APIRouter()


# 书卷列表（按正典顺序；传 version 时按该译本的书名展示）
@router.get("", response_model=list[Book])
async def list_books(
    version: str | None = Query(None, description="version code, e.g. BSB"),
    store: ScriptureStore = Depends(get_store),
) -> list[Book]:
    try:
        books = await store.list_books()
    except ReaderError as exc:
        raise to_http_exception(exc) from exc
    code = normalize_version_code(version)
    return [
        book.model_copy(
            update={"name": book_display_name(book.name, book.alternate_name, code)}
        )
        for book in books
    ]


# 书卷章节数（最大章节号）
@router.get("/{book_id}/chapters/count", response_model=ChapterCountResponse)
async def get_chapter_count(
    book_id: int,
    store: ScriptureStore = Depends(get_store),
) -> ChapterCountResponse:
    try:
        if await store.get_book(book_id) is None:
            raise BookNotFound(book_id)
        max_chapters = await store.get_max_chapter_number(book_id)
    except ReaderError as exc:
        raise to_http_exception(exc) from exc
    return ChapterCountResponse(
        book_id=book_id,
        max_chapters=max_chapters or settings.fallback_max_chapters,
    )


# 获取某译本的一章经文（附带当前用户的高亮颜色）
@router.get("/{book_id}/chapters/{chapter_number}/verses", response_model=VerseListResponse)
async def get_chapter_verses(
    book_id: int,
    chapter_number: int,
    version: str = Query(settings.default_version, description="version code, e.g. ACF"),
    fetcher: VerseFetcher = Depends(get_verse_fetcher),
    user: UserContext | None = Depends(get_optional_user),
) -> VerseListResponse:
    code = normalize_version_code(version) or version.strip().upper()
    if not code:
        raise HTTPException(status_code=400, detail="Version is required.")
    try:
        verses = await fetcher.fetch_verses(book_id, chapter_number, code)
        highlights = await fetcher.fetch_highlight_colors(user.user_id, verses) if user else {}
    except ReaderError as exc:
        raise to_http_exception(exc) from exc
    return VerseListResponse(
        book_id=book_id,
        chapter_number=chapter_number,
        version=code,
        verses=verses,
        highlights=highlights,
    )


# 当前用户在本章的笔记
@router.get("/{book_id}/chapters/{chapter_number}/notes", response_model=list[Note])
async def list_chapter_notes(
    book_id: int,
    chapter_number: int,
    store: ScriptureStore = Depends(get_store),
    user: UserContext = Depends(get_current_user),
) -> list[Note]:
    try:
        chapter = await store.get_chapter(book_id, chapter_number)
        if chapter is None:
            book = await store.get_book(book_id)
            if book is None:
                raise BookNotFound(book_id)
            raise ChapterNotFound(book.name, chapter_number)
        return await store.list_notes(chapter.id, user.user_id)
    except ReaderError as exc:
        raise to_http_exception(exc) from exc
