from __future__ import annotations

from datetime import datetime
from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bible_reader.core.database import Base, utc_now


class BibleVerse(Base):
    __tablename__ = "bible_verses"
    __table_args__ = (
        UniqueConstraint("chapter_id", "version", "verse_number", name="uq_verse_chapter_version_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    chapter_id: Mapped[int] = mapped_column(ForeignKey("bible_chapters.id"), index=True, nullable=False)
    version: Mapped[str] = mapped_column(String, index=True, nullable=False)
    verse_number: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
