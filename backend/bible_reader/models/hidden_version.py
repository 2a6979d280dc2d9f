from __future__ import annotations

from datetime import datetime
from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from bible_reader.core.database import Base, utc_now


class HiddenVersion(Base):
    __tablename__ = "hidden_bible_versions"

    # 管理员隐藏的译本代码，读者不可选择
    version: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
