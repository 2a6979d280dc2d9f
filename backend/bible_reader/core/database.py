from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from bible_reader.core.config import settings


# ORM 基类：所有模型继承它
class Base(DeclarativeBase):
    pass


# 统一的 UTC 时间戳（时间列默认值）
def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# 创建数据库引擎（默认 SQLite，配置 database_url 时连接 Supabase PostgreSQL）
def _build_engine():
    if settings.database_url:
        return create_engine(settings.database_url, future=True, pool_pre_ping=True)
    settings.ensure_dirs()
    return create_engine(
        f"sqlite:///{settings.sqlite_path}",
        connect_args={"check_same_thread": False},
        future=True,
    )


# 全局数据库引擎
engine = _build_engine()
# 会话工厂
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


# 初始化数据库表
def init_db(bind=None) -> None:
    from bible_reader.models import (  # noqa: F401
        book,
        chapter,
        verse,
        highlight,
        note,
        hidden_version,
    )

    target = bind or engine
    # 多个 worker 同时 create_all 会在 PostgreSQL 上产生 DDL 冲突，用 advisory lock 串行化
    if target.dialect.name.startswith("postgres"):
        lock_id = 47120316
        with target.connect() as conn:
            conn.execute(text("SELECT pg_advisory_lock(:lock_id)"), {"lock_id": lock_id})
            try:
                Base.metadata.create_all(bind=conn)
            finally:
                conn.execute(text("SELECT pg_advisory_unlock(:lock_id)"), {"lock_id": lock_id})
            conn.commit()
    else:
        Base.metadata.create_all(bind=target)
    if target.dialect.name != "sqlite":
        return
    with target.begin() as conn:
        book_columns = {row[1] for row in conn.execute(text("PRAGMA table_info(bible_books)"))}
        if "name_alt" not in book_columns:
            conn.execute(text("ALTER TABLE bible_books ADD COLUMN name_alt VARCHAR"))
