from __future__ import annotations

from datetime import datetime
from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bible_reader.core.database import Base, utc_now


class VerseHighlight(Base):
    __tablename__ = "bible_verse_highlights"

    # 同一 (verse_id, user_id) 可能存在多行，读取时任意一行即视为已高亮
    id: Mapped[str] = mapped_column(String, primary_key=True)
    verse_id: Mapped[int] = mapped_column(ForeignKey("bible_verses.id"), index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    highlight_color: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
