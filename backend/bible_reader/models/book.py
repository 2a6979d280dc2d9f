from __future__ import annotations

from datetime import datetime
from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bible_reader.core.database import Base, utc_now


class BibleBook(Base):
    __tablename__ = "bible_books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # 部分译本使用的书名（如 BSB 的英文书名）
    alternate_name: Mapped[str | None] = mapped_column("name_alt", String, nullable=True)
    abbreviation: Mapped[str | None] = mapped_column(String, nullable=True)
    testament: Mapped[str] = mapped_column(String, default="OT")
    # 正典顺序
    position: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
