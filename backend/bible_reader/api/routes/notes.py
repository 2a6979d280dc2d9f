from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from bible_reader.core.auth import UserContext, get_current_user
from bible_reader.core.errors import ReaderError, to_http_exception
from bible_reader.core.schemas import Note, NoteCreate
from bible_reader.services.highlight_service import save_notes
from bible_reader.services.store import ScriptureStore, get_store


router = APIRouter()


# 为所选经文保存笔记（每节一行）
@router.post("", response_model=list[Note])
async def create_notes(
    payload: NoteCreate,
    store: ScriptureStore = Depends(get_store),
    user: UserContext = Depends(get_current_user),
) -> list[Note]:
    try:
        return await save_notes(store, user.user_id, sorted(set(payload.verse_ids)), payload.text)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ReaderError as exc:
        raise to_http_exception(exc) from exc
