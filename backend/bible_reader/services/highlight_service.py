from __future__ import annotations

from typing import Iterable

from bible_reader.core.schemas import Highlight, Note
from bible_reader.core.versions import is_highlight_color
from bible_reader.services.store import ScriptureStore


# 逐节探测当前用户已有的高亮（任一行即视为已高亮）
async def probe_highlights(
    store: ScriptureStore, user_id: str, verse_ids: Iterable[int]
) -> dict[int, str]:
    colors: dict[int, str] = {}
    for verse_id in verse_ids:
        highlight = await store.get_highlight(verse_id, user_id)
        if highlight is not None:
            colors[verse_id] = highlight.color
    return colors


# 删除所选经文的全部高亮行（逐节顺序执行）
async def remove_highlights(store: ScriptureStore, user_id: str, verse_ids: Iterable[int]) -> int:
    removed = 0
    for verse_id in verse_ids:
        removed += await store.delete_highlights(verse_id, user_id)
    return removed


async def replace_highlights(
    store: ScriptureStore,
    user_id: str,
    verse_ids: Iterable[int],
    color: str,
    clear_existing: bool = True,
) -> list[Highlight]:
    if not is_highlight_color(color):
        raise ValueError(f"Unknown highlight color: {color}")
    ids = list(verse_ids)
    # 全部删除完成后才开始插入，避免留下重复或孤立的行
    if clear_existing:
        await remove_highlights(store, user_id, ids)
    inserted = []
    for verse_id in ids:
        inserted.append(await store.insert_highlight(verse_id, user_id, color))
    return inserted


async def save_notes(
    store: ScriptureStore, user_id: str, verse_ids: Iterable[int], note_text: str
) -> list[Note]:
    text = note_text.strip()
    if not text:
        raise ValueError("Note text is empty.")
    return [await store.insert_note(verse_id, user_id, text) for verse_id in verse_ids]
