from __future__ import annotations

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


HighlightColor = Literal["yellow", "blue", "red", "purple", "green", "orange"]

PanelStatus = Literal["idle", "loading", "ready", "error"]

SelectionState = Literal["idle", "selecting"]

Layout = Literal["columns", "stacked"]


# ---- 存储边界上的类型化记录 ----


class Book(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    alternate_name: Optional[str] = None


class Chapter(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    book_id: int
    chapter_number: int = Field(ge=1)


class Verse(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    chapter_id: int
    version: str
    verse_number: int = Field(ge=1)
    text: str


class Highlight(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    verse_id: int
    user_id: str
    color: HighlightColor


class Note(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    verse_id: int
    user_id: str
    note_text: str
    verse_number: Optional[int] = None
    verse_text: Optional[str] = None
    created_at: Optional[str] = None


# ---- HTTP 接口 ----


class VersionOut(BaseModel):
    code: str
    name: str


class ChapterCountResponse(BaseModel):
    book_id: int
    max_chapters: int


class VerseListResponse(BaseModel):
    book_id: int
    chapter_number: int
    version: str
    verses: List[Verse] = Field(default_factory=list)
    highlights: Dict[int, HighlightColor] = Field(default_factory=dict)


class HighlightRequest(BaseModel):
    verse_ids: List[int] = Field(min_length=1)
    color: HighlightColor


class HighlightRemoveRequest(BaseModel):
    verse_ids: List[int] = Field(min_length=1)


class HighlightStatusResponse(BaseModel):
    highlighted: bool = False
    colors: Dict[int, HighlightColor] = Field(default_factory=dict)


class NoteCreate(BaseModel):
    verse_ids: List[int] = Field(min_length=1)
    text: str = Field(min_length=1)


# ---- 对照阅读会话 ----


class ReaderSnapshot(BaseModel):
    selected_book_id: int = 1
    chapter_number: int = 1
    versions: List[str] = Field(default_factory=list)


class SelectBookRequest(BaseModel):
    book_id: int


class SelectChapterRequest(BaseModel):
    chapter_number: int


class ChangeVersionRequest(BaseModel):
    version: str


class ApplyHighlightRequest(BaseModel):
    color: HighlightColor


class NoteTextRequest(BaseModel):
    text: str = Field(min_length=1)


class ErrorOut(BaseModel):
    kind: str
    message: str


class NoticeOut(BaseModel):
    level: Literal["info", "error"] = "info"
    title: str
    message: str = ""


class NavigationOut(BaseModel):
    selected_book_id: int
    chapter_number: int
    max_chapters: int
    has_next: bool
    has_previous: bool


class PanelOut(BaseModel):
    slot_id: str
    index: int
    version_code: str
    display_name: str
    status: PanelStatus = "idle"
    verses: List[Verse] = Field(default_factory=list)
    highlights: Dict[int, HighlightColor] = Field(default_factory=dict)
    error: Optional[ErrorOut] = None
    selected_verse_ids: List[int] = Field(default_factory=list)
    selection_state: SelectionState = "idle"
    already_highlighted: bool = False
    can_remove: bool = False


class ReaderStateOut(BaseModel):
    session_id: str
    navigation: NavigationOut
    panels: List[PanelOut] = Field(default_factory=list)
    layout: Layout = "columns"
    can_add_slot: bool = True
    auth_required: bool = False
    notices: List[NoticeOut] = Field(default_factory=list)
