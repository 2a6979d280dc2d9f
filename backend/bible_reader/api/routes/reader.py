from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from bible_reader.core.auth import UserContext, get_optional_user
from bible_reader.core.config import settings
from bible_reader.core.errors import ReaderError, to_http_exception
from bible_reader.core.schemas import (
    ApplyHighlightRequest,
    ChangeVersionRequest,
    Note,
    NoteTextRequest,
    ReaderSnapshot,
    ReaderStateOut,
    SelectBookRequest,
    SelectChapterRequest,
)
from bible_reader.reader.session import AuthSession
from bible_reader.reader.view import ReaderView
from bible_reader.services.verse_fetcher import VerseFetcher, get_verse_fetcher


logger = logging.getLogger(__name__)

router = APIRouter()
# 进程内阅读会话（非持久化，重启后由客户端用 snapshot 恢复）
READER_SESSIONS: dict[str, ReaderView] = {}


# 释放超过空闲时间的会话
def _evict_idle_sessions() -> int:
    idle = [
        session_id
        for session_id, view in READER_SESSIONS.items()
        if view.is_idle(settings.reader_session_idle_seconds)
    ]
    for session_id in idle:
        view = READER_SESSIONS.pop(session_id)
        view.close()
        logger.info("reader session %s evicted after idle timeout", session_id)
    return len(idle)


# 取出会话并同步本次请求的登录状态
def get_reader(
    session_id: str,
    user: UserContext | None = Depends(get_optional_user),
) -> ReaderView:
    _evict_idle_sessions()
    view = READER_SESSIONS.get(session_id)
    if not view:
        raise HTTPException(status_code=404, detail="Reader session not found.")
    view.touch()
    view.auth.set_user(user)
    return view


@contextmanager
def _reader_errors() -> Iterator[None]:
    try:
        yield
    except IndexError as exc:
        raise HTTPException(status_code=404, detail="Panel not found.") from exc
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Verse is not shown in this panel.") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ReaderError as exc:
        raise to_http_exception(exc) from exc


# 打开对照阅读会话（可传入之前保存的 snapshot）
@router.post("/sessions", response_model=ReaderStateOut)
async def open_session(
    snapshot: Optional[ReaderSnapshot] = Body(None),
    viewport_width: int | None = Query(None, ge=0),
    fetcher: VerseFetcher = Depends(get_verse_fetcher),
    user: UserContext | None = Depends(get_optional_user),
) -> ReaderStateOut:
    _evict_idle_sessions()
    view = await ReaderView.open(fetcher, AuthSession(user), snapshot=snapshot)
    READER_SESSIONS[view.session_id] = view
    return view.render(viewport_width)


@router.get("/sessions/{session_id}", response_model=ReaderStateOut)
def get_session(
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    return view.render(viewport_width)


@router.delete("/sessions/{session_id}")
def close_session(view: ReaderView = Depends(get_reader)) -> dict:
    view.close()
    READER_SESSIONS.pop(view.session_id, None)
    return {"ok": True, "session_id": view.session_id}


@router.get("/sessions/{session_id}/snapshot", response_model=ReaderSnapshot)
def get_snapshot(view: ReaderView = Depends(get_reader)) -> ReaderSnapshot:
    return view.snapshot()


# ---- 导航 ----


@router.post("/sessions/{session_id}/book", response_model=ReaderStateOut)
async def select_book(
    payload: SelectBookRequest,
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    await view.select_book(payload.book_id)
    return view.render(viewport_width)


@router.post("/sessions/{session_id}/chapter", response_model=ReaderStateOut)
async def select_chapter(
    payload: SelectChapterRequest,
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    await view.select_chapter(payload.chapter_number)
    return view.render(viewport_width)


@router.post("/sessions/{session_id}/next", response_model=ReaderStateOut)
async def next_chapter(
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    await view.next_chapter()
    return view.render(viewport_width)


@router.post("/sessions/{session_id}/previous", response_model=ReaderStateOut)
async def previous_chapter(
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    await view.previous_chapter()
    return view.render(viewport_width)


# ---- 译本栏位 ----


@router.post("/sessions/{session_id}/slots", response_model=ReaderStateOut)
async def add_slot(
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    await view.add_slot()
    return view.render(viewport_width)


@router.put("/sessions/{session_id}/slots/{index}", response_model=ReaderStateOut)
async def change_slot_version(
    index: int,
    payload: ChangeVersionRequest,
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    with _reader_errors():
        await view.change_slot_version(index, payload.version)
    return view.render(viewport_width)


@router.delete("/sessions/{session_id}/slots/{index}", response_model=ReaderStateOut)
def remove_slot(
    index: int,
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    with _reader_errors():
        view.remove_slot(index)
    return view.render(viewport_width)


# ---- 选择、高亮与笔记 ----


@router.post(
    "/sessions/{session_id}/slots/{index}/verses/{verse_id}/toggle",
    response_model=ReaderStateOut,
)
async def toggle_verse(
    index: int,
    verse_id: int,
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    with _reader_errors():
        await view.toggle_verse(index, verse_id)
    return view.render(viewport_width)


@router.delete("/sessions/{session_id}/slots/{index}/selection", response_model=ReaderStateOut)
def clear_selection(
    index: int,
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    with _reader_errors():
        view.clear_selection(index)
    return view.render(viewport_width)


@router.post("/sessions/{session_id}/slots/{index}/highlight", response_model=ReaderStateOut)
async def apply_highlight(
    index: int,
    payload: ApplyHighlightRequest,
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    with _reader_errors():
        await view.apply_highlight(index, payload.color)
    return view.render(viewport_width)


@router.post(
    "/sessions/{session_id}/slots/{index}/highlight/remove",
    response_model=ReaderStateOut,
)
async def remove_highlight(
    index: int,
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    with _reader_errors():
        await view.remove_highlight(index)
    return view.render(viewport_width)


@router.post("/sessions/{session_id}/slots/{index}/notes", response_model=ReaderStateOut)
async def save_note(
    index: int,
    payload: NoteTextRequest,
    viewport_width: int | None = Query(None, ge=0),
    view: ReaderView = Depends(get_reader),
) -> ReaderStateOut:
    with _reader_errors():
        await view.save_note(index, payload.text)
    return view.render(viewport_width)


@router.get("/sessions/{session_id}/notes", response_model=list[Note])
async def list_notes(view: ReaderView = Depends(get_reader)) -> list[Note]:
    with _reader_errors():
        return await view.list_chapter_notes()
