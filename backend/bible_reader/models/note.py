from __future__ import annotations

from datetime import datetime
from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bible_reader.core.database import Base, utc_now


class VerseNote(Base):
    __tablename__ = "bible_verse_notes"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    verse_id: Mapped[int] = mapped_column(ForeignKey("bible_verses.id"), index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    note_text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
