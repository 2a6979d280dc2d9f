from __future__ import annotations

from fastapi import APIRouter, Depends

from bible_reader.core.errors import ReaderError, to_http_exception
from bible_reader.core.schemas import VersionOut
from bible_reader.core.versions import list_versions
from bible_reader.services.store import ScriptureStore, get_store


router = APIRouter()


# 可选译本（已排除管理员隐藏的译本）
@router.get("", response_model=list[VersionOut])
async def get_versions(store: ScriptureStore = Depends(get_store)) -> list[VersionOut]:
    try:
        hidden = await store.list_hidden_versions()
    except ReaderError as exc:
        raise to_http_exception(exc) from exc
    return [VersionOut(**item) for item in list_versions(hidden)]
