from __future__ import annotations

import logging
from typing import Awaitable, Callable

from bible_reader.core.auth import UserContext
from bible_reader.core.errors import StoreError, Unauthenticated
from bible_reader.core.schemas import SelectionState
from bible_reader.core.versions import is_highlight_color
from bible_reader.reader.notices import Notifier
from bible_reader.reader.session import AuthSession
from bible_reader.services.highlight_service import (
    probe_highlights,
    remove_highlights,
    replace_highlights,
    save_notes,
)
from bible_reader.services.verse_fetcher import VerseFetcher

logger = logging.getLogger(__name__)

HighlightsChanged = Callable[[], Awaitable[None]]


class SelectionController:
    """Verse selection and highlight actions for a single panel.

    ``idle`` while nothing is selected, ``selecting`` otherwise. Every change
    to a non-empty selection re-probes the signed-in user's highlights; when
    any selected verse already has one, ``already_highlighted`` is set and
    applying a color replaces the existing rows instead of adding to them.

    Store failures are reported through the notifier and leave the selection
    untouched so the action can be retried.
    """

    def __init__(
        self,
        fetcher: VerseFetcher,
        auth: AuthSession,
        notifier: Notifier,
        on_highlights_changed: HighlightsChanged | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._auth = auth
        self._notifier = notifier
        self._on_highlights_changed = on_highlights_changed
        self.selected: set[int] = set()
        self.already_highlighted = False
        self.colors: dict[int, str] = {}
        # 最近一次完成探测时的选中集合
        self._probed: frozenset[int] | None = None

    @property
    def state(self) -> SelectionState:
        return "selecting" if self.selected else "idle"

    @property
    def verse_ids(self) -> list[int]:
        return sorted(self.selected)

    def clear(self) -> None:
        self.selected.clear()
        self.reset_probe()

    def reset_probe(self) -> None:
        self.already_highlighted = False
        self.colors = {}
        self._probed = None

    async def toggle_select(self, verse_id: int) -> None:
        if verse_id in self.selected:
            self.selected.discard(verse_id)
        else:
            self.selected.add(verse_id)
        await self.probe()

    async def probe(self) -> bool:
        snapshot = frozenset(self.selected)
        if not snapshot:
            self.reset_probe()
            self._probed = snapshot
            return False
        user = self._auth.current_user
        if user is None:
            self.reset_probe()
            return False
        try:
            colors = await probe_highlights(self._fetcher.store, user.user_id, sorted(snapshot))
        except StoreError as exc:
            self._notifier.error("Could not check highlights", exc.message)
            return self.already_highlighted
        # 探测期间选中集合已变化，等待更新的探测结果
        if frozenset(self.selected) != snapshot:
            return self.already_highlighted
        self.colors = colors
        self.already_highlighted = bool(colors)
        self._probed = snapshot
        return self.already_highlighted

    def _require_user(self) -> UserContext:
        user = self._auth.current_user
        if user is None:
            raise Unauthenticated()
        return user

    async def _ensure_probed(self) -> bool:
        if self._probed != frozenset(self.selected):
            await self.probe()
        return self._probed == frozenset(self.selected)

    async def apply_highlight(self, color: str) -> bool:
        if not is_highlight_color(color):
            raise ValueError(f"Unknown highlight color: {color}")
        if not self.selected:
            return False
        user = self._require_user()
        if not await self._ensure_probed():
            return False
        verse_ids = self.verse_ids
        try:
            await replace_highlights(
                self._fetcher.store,
                user.user_id,
                verse_ids,
                color,
                clear_existing=self.already_highlighted,
            )
        except StoreError as exc:
            # 可能已部分写入，重试前必须重新探测
            self.reset_probe()
            self._notifier.error("Could not highlight verses", exc.message)
            return False
        logger.info(f"User {user.user_id} highlighted {verse_ids} with {color}")
        self.clear()
        await self._highlights_changed()
        return True

    async def remove_highlight(self) -> bool:
        if not self.selected:
            return False
        user = self._require_user()
        verse_ids = self.verse_ids
        try:
            await remove_highlights(self._fetcher.store, user.user_id, verse_ids)
        except StoreError as exc:
            self.reset_probe()
            self._notifier.error("Could not remove highlights", exc.message)
            return False
        logger.info(f"User {user.user_id} removed highlights from {verse_ids}")
        self.clear()
        await self._highlights_changed()
        return True

    async def save_note(self, note_text: str) -> bool:
        if not self.selected:
            return False
        user = self._require_user()
        try:
            await save_notes(self._fetcher.store, user.user_id, self.verse_ids, note_text)
        except StoreError as exc:
            self._notifier.error("Could not save note", exc.message)
            return False
        self._notifier.info("Note saved")
        self.clear()
        return True

    async def _highlights_changed(self) -> None:
        self._fetcher.invalidate_highlights()
        if self._on_highlights_changed is not None:
            await self._on_highlights_changed()
