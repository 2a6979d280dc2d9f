from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterator, Sequence

from bible_reader.core.config import settings
from bible_reader.core.errors import NOT_FOUND_ERRORS, ReaderError, StoreError
from bible_reader.core.schemas import PanelStatus, Verse
from bible_reader.core.versions import BIBLE_VERSIONS, normalize_version_code, version_display_name
from bible_reader.reader.notices import Notifier
from bible_reader.reader.selection import SelectionController
from bible_reader.services.verse_fetcher import VerseFetcher
from bible_reader.utils.ids import new_slot_id

logger = logging.getLogger(__name__)

FetchKey = tuple[int, int, str]


@dataclass(frozen=True)
class VersionSlot:
    id: str
    version_code: str
    display_name: str


def new_slot(version_code: str) -> VersionSlot:
    return VersionSlot(
        id=new_slot_id(),
        version_code=version_code,
        display_name=version_display_name(version_code),
    )


class VersionPanel:
    """One reading column: a version slot, its verses and its selection.

    ``load`` records the (book, chapter, version) key it was dispatched for;
    a result that arrives after a newer key was requested is discarded, so a
    panel never shows verses of a version it no longer displays.
    """

    def __init__(
        self,
        slot: VersionSlot,
        fetcher: VerseFetcher,
        notifier: Notifier,
        selection: SelectionController,
    ) -> None:
        self.slot = slot
        self.selection = selection
        self._fetcher = fetcher
        self._notifier = notifier
        self.status: PanelStatus = "idle"
        self.verses: list[Verse] = []
        self.verses_key: FetchKey | None = None
        self.highlights: dict[int, str] = {}
        self.error: ReaderError | None = None
        self._pending_key: FetchKey | None = None

    @property
    def verse_ids(self) -> set[int]:
        return {verse.id for verse in self.verses}

    def fetch_key(self, book_id: int, chapter_number: int) -> FetchKey:
        return (book_id, chapter_number, self.slot.version_code)

    def _is_current(self, key: FetchKey) -> bool:
        if self._pending_key != key:
            logger.debug(f"Panel {self.slot.id}: discarding result for superseded key {key}")
            return False
        return True

    async def load(self, book_id: int, chapter_number: int, user_id: str | None = None) -> None:
        key = self.fetch_key(book_id, chapter_number)
        self._pending_key = key
        self.status = "loading"
        self.error = None
        try:
            verses = await self._fetcher.fetch_verses(*key)
        except NOT_FOUND_ERRORS as exc:
            if self._is_current(key):
                self._show_error(key, exc)
            return
        except StoreError as exc:
            if self._is_current(key):
                self._show_error(key, exc)
                self._notifier.error("Could not load verses", exc.message)
            return
        if not self._is_current(key):
            return
        self.verses = verses
        self.verses_key = key
        self.highlights = {}
        self.status = "ready"
        await self.load_highlights(user_id)

    def _show_error(self, key: FetchKey, exc: ReaderError) -> None:
        self.status = "error"
        self.error = exc
        self.verses = []
        self.verses_key = key
        self.highlights = {}

    async def load_highlights(self, user_id: str | None) -> None:
        key = self.verses_key
        if user_id is None or not self.verses:
            self.highlights = {}
            return
        try:
            colors = await self._fetcher.fetch_highlight_colors(user_id, self.verses)
        except StoreError as exc:
            self._notifier.error("Could not load highlights", exc.message)
            return
        if self.verses_key == key:
            self.highlights = colors


class VersionPanelSet:
    """Ordered reading columns, between 1 and ``max_slots`` of them.

    Adding past the limit or removing the last panel is rejected with a
    notice and leaves the set unchanged.
    """

    def __init__(
        self,
        fetcher: VerseFetcher,
        notifier: Notifier,
        selection_factory: Callable[[], SelectionController],
        versions: Sequence[str] = (),
        hidden_versions: frozenset[str] = frozenset(),
        default_version: str | None = None,
        max_slots: int | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._notifier = notifier
        self._selection_factory = selection_factory
        self.hidden_versions = hidden_versions
        self.default_version = default_version or settings.default_version
        self.max_slots = max_slots or settings.max_version_slots

        initial = []
        for value in versions:
            code = normalize_version_code(value)
            if code and self.is_selectable(code):
                initial.append(code)
        self.panels: list[VersionPanel] = [
            self._new_panel(code) for code in (initial or [self.default_version])[: self.max_slots]
        ]

    def __len__(self) -> int:
        return len(self.panels)

    def __iter__(self) -> Iterator[VersionPanel]:
        return iter(self.panels)

    def __getitem__(self, index: int) -> VersionPanel:
        if not 0 <= index < len(self.panels):
            raise IndexError(f"No panel at index {index}")
        return self.panels[index]

    @property
    def can_add(self) -> bool:
        return len(self.panels) < self.max_slots

    @property
    def can_remove(self) -> bool:
        return len(self.panels) > 1

    @property
    def version_codes(self) -> list[str]:
        return [panel.slot.version_code for panel in self.panels]

    def is_selectable(self, code: str) -> bool:
        return code in BIBLE_VERSIONS and code not in self.hidden_versions

    def _new_panel(self, code: str) -> VersionPanel:
        return VersionPanel(new_slot(code), self._fetcher, self._notifier, self._selection_factory())

    # 优先选择尚未展示且未隐藏的译本，全部用完时回退到默认译本
    def _next_version_code(self) -> str:
        shown = set(self.version_codes)
        for code in BIBLE_VERSIONS:
            if code not in shown and self.is_selectable(code):
                return code
        return self.default_version

    def add_slot(self) -> VersionPanel | None:
        if not self.can_add:
            self._notifier.error(
                "Limit reached", f"You can compare up to {self.max_slots} versions at once."
            )
            return None
        panel = self._new_panel(self._next_version_code())
        self.panels.append(panel)
        self._notifier.info("Version added", "A new version was added for comparison.")
        return panel

    def remove_slot(self, index: int) -> bool:
        panel = self[index]
        if not self.can_remove:
            self._notifier.error("Not allowed", "At least one version must remain.")
            return False
        self.panels.remove(panel)
        self._notifier.info("Version removed", f"{panel.slot.display_name} was removed.")
        return True

    def change_slot_version(self, index: int, version_code: str) -> VersionPanel | None:
        panel = self[index]
        code = normalize_version_code(version_code)
        if code is None or not self.is_selectable(code):
            self._notifier.error("Version unavailable", "This version is not available right now.")
            return None
        if code == panel.slot.version_code:
            return panel
        panel.slot = replace(panel.slot, version_code=code, display_name=version_display_name(code))
        # 不同译本的经文 id 不同，原选择失效
        panel.selection.clear()
        return panel

    def clear_selections(self) -> None:
        for panel in self.panels:
            panel.selection.clear()
