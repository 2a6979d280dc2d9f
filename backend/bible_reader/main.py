from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bible_reader.api.routes import books, highlights, notes, reader, versions
from bible_reader.core.config import settings
from bible_reader.core.database import init_db


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# 应用入口：初始化 FastAPI 实例
app = FastAPI(title="Bible Compare Reader", root_path=settings.root_path or "")

# 配置 CORS，允许前端访问后端 API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
api_prefix = settings.api_prefix
if api_prefix is None:
    api_prefix = "" if (settings.root_path or "").strip() else "/api"
api_prefix = api_prefix.rstrip("/")
app.include_router(books.router, prefix=f"{api_prefix}/books", tags=["books"])
app.include_router(versions.router, prefix=f"{api_prefix}/versions", tags=["versions"])
app.include_router(highlights.router, prefix=f"{api_prefix}/highlights", tags=["highlights"])
app.include_router(notes.router, prefix=f"{api_prefix}/notes", tags=["notes"])
app.include_router(reader.router, prefix=f"{api_prefix}/reader", tags=["reader"])


# 启动事件：创建数据库表结构
@app.on_event("startup")
def on_startup() -> None:
    init_db()
