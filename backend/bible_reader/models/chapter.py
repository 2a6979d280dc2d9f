from __future__ import annotations

from datetime import datetime
from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bible_reader.core.database import Base, utc_now


class BibleChapter(Base):
    __tablename__ = "bible_chapters"
    __table_args__ = (UniqueConstraint("book_id", "chapter_number", name="uq_chapter_book_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    book_id: Mapped[int] = mapped_column(ForeignKey("bible_books.id"), index=True, nullable=False)
    # 从 1 开始且连续，最大值即该书章节数
    chapter_number: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
