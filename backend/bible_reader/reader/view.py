from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from bible_reader.core.auth import UserContext
from bible_reader.core.config import settings
from bible_reader.core.database import utc_now
from bible_reader.core.errors import BookNotFound, ChapterNotFound, StoreError, Unauthenticated
from bible_reader.core.schemas import (
    ErrorOut,
    Layout,
    NavigationOut,
    Note,
    PanelOut,
    ReaderSnapshot,
    ReaderStateOut,
)
from bible_reader.reader.navigation import NavigationState
from bible_reader.reader.notices import Notifier
from bible_reader.reader.panels import VersionPanel, VersionPanelSet
from bible_reader.reader.selection import SelectionController
from bible_reader.reader.session import AuthSession
from bible_reader.services.verse_fetcher import VerseFetcher
from bible_reader.utils.ids import new_session_id

logger = logging.getLogger(__name__)


def layout_for(viewport_width: int | None) -> Layout:
    if viewport_width is not None and viewport_width < settings.stacked_layout_max_width:
        return "stacked"
    return "columns"


class ReaderView:
    """Composition root of the comparison reader.

    Wires one ``NavigationState`` shared by every panel, the ``VersionPanelSet``
    and a ``SelectionController`` per panel. Every navigation call clears all
    selections first; panels then reload concurrently and each one settles
    on its own.
    """

    def __init__(
        self,
        fetcher: VerseFetcher,
        auth: AuthSession | None = None,
        snapshot: ReaderSnapshot | None = None,
        hidden_versions: frozenset[str] = frozenset(),
        session_id: str | None = None,
    ) -> None:
        snapshot = snapshot or ReaderSnapshot()
        self.session_id = session_id or new_session_id()
        self.fetcher = fetcher
        self.auth = auth or AuthSession()
        self.notices = Notifier()
        self.auth_required = False
        self.last_seen_at = utc_now()
        self.navigation = NavigationState(
            fetcher.store, snapshot.selected_book_id, snapshot.chapter_number
        )
        self.panels = VersionPanelSet(
            fetcher,
            self.notices,
            self._new_selection,
            versions=snapshot.versions,
            hidden_versions=hidden_versions,
        )
        self._unsubscribe = self.auth.subscribe(self._on_auth_change)

    @classmethod
    async def open(
        cls,
        fetcher: VerseFetcher,
        auth: AuthSession | None = None,
        snapshot: ReaderSnapshot | None = None,
        session_id: str | None = None,
    ) -> ReaderView:
        try:
            hidden = await fetcher.store.list_hidden_versions()
        except StoreError as exc:
            logger.warning(f"Hidden versions unavailable: {exc.message}")
            hidden = frozenset()
        view = cls(fetcher, auth, snapshot=snapshot, hidden_versions=hidden, session_id=session_id)
        await view.navigation.refresh_bounds()
        await view.refresh()
        return view

    def close(self) -> None:
        self._unsubscribe()

    def touch(self) -> None:
        self.last_seen_at = utc_now()

    def is_idle(self, idle_seconds: int) -> bool:
        return utc_now() - self.last_seen_at > timedelta(seconds=idle_seconds)

    def _new_selection(self) -> SelectionController:
        return SelectionController(
            self.fetcher, self.auth, self.notices, on_highlights_changed=self.refresh_highlights
        )

    def _on_auth_change(self, user: UserContext | None) -> None:
        if user is not None:
            self.auth_required = False
        for panel in self.panels:
            panel.selection.reset_probe()
            if user is None:
                panel.highlights = {}

    @property
    def user_id(self) -> str | None:
        user = self.auth.current_user
        return user.user_id if user else None

    # ---- 加载 ----

    async def refresh(self) -> None:
        book_id = self.navigation.selected_book_id
        chapter_number = self.navigation.chapter_number
        await asyncio.gather(
            *(panel.load(book_id, chapter_number, self.user_id) for panel in self.panels)
        )

    async def refresh_highlights(self) -> None:
        await asyncio.gather(*(panel.load_highlights(self.user_id) for panel in self.panels))

    async def _load_panel(self, panel: VersionPanel) -> None:
        await panel.load(
            self.navigation.selected_book_id, self.navigation.chapter_number, self.user_id
        )

    # ---- 导航（总是先清空所有栏位的选择） ----

    async def select_book(self, book_id: int) -> None:
        self.panels.clear_selections()
        await self.navigation.select_book(book_id)
        await self.refresh()

    async def select_chapter(self, chapter_number: int) -> None:
        self.panels.clear_selections()
        if self.navigation.select_chapter(chapter_number):
            await self.refresh()

    async def next_chapter(self) -> None:
        self.panels.clear_selections()
        if self.navigation.next_chapter():
            await self.refresh()

    async def previous_chapter(self) -> None:
        self.panels.clear_selections()
        if self.navigation.previous_chapter():
            await self.refresh()

    # ---- 栏位 ----

    async def add_slot(self) -> VersionPanel | None:
        panel = self.panels.add_slot()
        if panel is not None:
            await self._load_panel(panel)
        return panel

    def remove_slot(self, index: int) -> bool:
        return self.panels.remove_slot(index)

    async def change_slot_version(self, index: int, version_code: str) -> VersionPanel | None:
        panel = self.panels.change_slot_version(index, version_code)
        if panel is not None:
            await self._load_panel(panel)
        return panel

    # ---- 选择与高亮 ----

    async def toggle_verse(self, index: int, verse_id: int) -> None:
        panel = self.panels[index]
        if verse_id not in panel.verse_ids:
            raise KeyError(verse_id)
        await panel.selection.toggle_select(verse_id)

    def clear_selection(self, index: int) -> None:
        self.panels[index].selection.clear()

    async def apply_highlight(self, index: int, color: str) -> bool:
        selection = self.panels[index].selection
        try:
            return await selection.apply_highlight(color)
        except Unauthenticated:
            self.auth_required = True
            return False

    async def remove_highlight(self, index: int) -> bool:
        selection = self.panels[index].selection
        try:
            return await selection.remove_highlight()
        except Unauthenticated:
            self.auth_required = True
            return False

    async def save_note(self, index: int, note_text: str) -> bool:
        selection = self.panels[index].selection
        try:
            return await selection.save_note(note_text)
        except Unauthenticated:
            self.auth_required = True
            return False

    async def list_chapter_notes(self) -> list[Note]:
        user = self.auth.current_user
        if user is None:
            raise Unauthenticated()
        store = self.fetcher.store
        book_id = self.navigation.selected_book_id
        chapter_number = self.navigation.chapter_number
        chapter = await store.get_chapter(book_id, chapter_number)
        if chapter is None:
            book = await store.get_book(book_id)
            if book is None:
                raise BookNotFound(book_id)
            raise ChapterNotFound(book.name, chapter_number)
        return await store.list_notes(chapter.id, user.user_id)

    # ---- 渲染 ----

    def snapshot(self) -> ReaderSnapshot:
        return ReaderSnapshot(
            selected_book_id=self.navigation.selected_book_id,
            chapter_number=self.navigation.chapter_number,
            versions=self.panels.version_codes,
        )

    def _panel_out(self, index: int, panel: VersionPanel) -> PanelOut:
        selection = panel.selection
        return PanelOut(
            slot_id=panel.slot.id,
            index=index,
            version_code=panel.slot.version_code,
            display_name=panel.slot.display_name,
            status=panel.status,
            verses=panel.verses,
            highlights=panel.highlights,
            error=ErrorOut(**panel.error.to_detail()) if panel.error else None,
            selected_verse_ids=selection.verse_ids,
            selection_state=selection.state,
            already_highlighted=selection.already_highlighted,
            can_remove=self.panels.can_remove,
        )

    def render(self, viewport_width: int | None = None) -> ReaderStateOut:
        nav = self.navigation
        state = ReaderStateOut(
            session_id=self.session_id,
            navigation=NavigationOut(
                selected_book_id=nav.selected_book_id,
                chapter_number=nav.chapter_number,
                max_chapters=nav.max_chapters,
                has_next=nav.has_next,
                has_previous=nav.has_previous,
            ),
            panels=[self._panel_out(index, panel) for index, panel in enumerate(self.panels)],
            layout=layout_for(viewport_width),
            can_add_slot=self.panels.can_add,
            auth_required=self.auth_required,
            notices=self.notices.drain(),
        )
        # 登录提示是一次性的
        self.auth_required = False
        return state
