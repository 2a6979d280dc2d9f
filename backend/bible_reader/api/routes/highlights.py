from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from bible_reader.core.auth import UserContext, get_current_user
from bible_reader.core.errors import ReaderError, to_http_exception
from bible_reader.core.schemas import (
    HighlightRemoveRequest,
    HighlightRequest,
    HighlightStatusResponse,
)
from bible_reader.core.versions import HIGHLIGHT_COLORS
from bible_reader.services.highlight_service import (
    probe_highlights,
    remove_highlights,
    replace_highlights,
)
from bible_reader.services.verse_fetcher import VerseFetcher, get_verse_fetcher


router = APIRouter()


@router.get("/colors")
def get_highlight_colors() -> list[dict[str, str]]:
    return [{"key": key, "color": color} for key, color in HIGHLIGHT_COLORS.items()]


# 探测所选经文是否已有高亮
@router.get("/status", response_model=HighlightStatusResponse)
async def get_highlight_status(
    verse_ids: list[int] = Query([]),
    fetcher: VerseFetcher = Depends(get_verse_fetcher),
    user: UserContext = Depends(get_current_user),
) -> HighlightStatusResponse:
    try:
        colors = await probe_highlights(fetcher.store, user.user_id, verse_ids)
    except ReaderError as exc:
        raise to_http_exception(exc) from exc
    return HighlightStatusResponse(highlighted=bool(colors), colors=colors)


# 为所选经文设置高亮（先删除旧高亮，再逐节插入）
@router.post("")
async def apply_highlights(
    payload: HighlightRequest,
    fetcher: VerseFetcher = Depends(get_verse_fetcher),
    user: UserContext = Depends(get_current_user),
) -> dict:
    verse_ids = sorted(set(payload.verse_ids))
    try:
        await replace_highlights(fetcher.store, user.user_id, verse_ids, payload.color)
    except ReaderError as exc:
        raise to_http_exception(exc) from exc
    fetcher.invalidate_highlights()
    return {"ok": True, "verse_ids": verse_ids, "color": payload.color}


@router.post("/remove")
async def delete_highlights(
    payload: HighlightRemoveRequest,
    fetcher: VerseFetcher = Depends(get_verse_fetcher),
    user: UserContext = Depends(get_current_user),
) -> dict:
    verse_ids = sorted(set(payload.verse_ids))
    try:
        removed = await remove_highlights(fetcher.store, user.user_id, verse_ids)
    except ReaderError as exc:
        raise to_http_exception(exc) from exc
    fetcher.invalidate_highlights()
    return {"ok": True, "verse_ids": verse_ids, "removed": removed}
