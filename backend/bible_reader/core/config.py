from __future__ import annotations

import os
from pydantic_settings import BaseSettings


# 应用配置：统一管理环境变量与默认值
class Settings(BaseSettings):
    # 运行环境标识（便于日志、调试、区分开发/生产）
    app_env: str = "dev"
    # FastAPI 根路径（反向代理或子路径部署时使用）
    root_path: str = ""
    # API 前缀（兼容多版本路由或网关转发）
    api_prefix: str | None = None
    # 项目运行时数据根目录（数据库等）
    data_dir: str = "data"
    # SQLite 数据库文件路径（默认本地文件）
    sqlite_path: str = "data/scripture.db"
    # 可选数据库连接串（优先用于 Supabase PostgreSQL 等外部数据库）
    database_url: str | None = None
    # 日志级别
    log_level: str = "INFO"

    # 允许跨域访问的前端地址列表（逗号分隔）
    cors_origins: str = "http://localhost:3000"

    # 新增对照栏位时的默认译本
    default_version: str = "ACF"
    # 同时对照的最大译本数
    max_version_slots: int = 4
    # 章节数查询失败时的兜底值
    fallback_max_chapters: int = 50
    # 经文缓存保鲜时间（秒）
    verse_cache_fresh_seconds: int = 3600
    # 经文缓存保留时间（秒），过期但可在重新拉取期间使用
    verse_cache_retain_seconds: int = 86400
    # 低于该视口宽度时栏位纵向堆叠
    stacked_layout_max_width: int = 768
    # 阅读会话空闲超时（秒），超时后释放
    reader_session_idle_seconds: int = 1800

    # Supabase 项目地址（前后端均需要）
    supabase_url: str = ""
    # Supabase JWKS 地址（用于后端 JWT 验证，留空则由 supabase_url 推导）
    supabase_jwks_url: str | None = None
    # Supabase JWT Secret（对称签名时使用，可与 JWKS 二选一）
    supabase_jwt_secret: str | None = None
    # JWT 验证时的 audience（Supabase 默认是 authenticated）
    supabase_jwt_audience: str = "authenticated"
    # JWT 验证时的 issuer（留空则由 supabase_url 推导）
    supabase_jwt_issuer: str | None = None

    # Pydantic Settings 行为配置
    class Config:
        env_file = (
            os.getenv("APP_ENV_FILE") or "config/.env",
            "backend/config/.env",
            ".env",
        )
        case_sensitive = False
        extra = "ignore" if os.getenv("APP_ENV", "dev").lower() == "dev" else "forbid"

    # 解析 CORS 允许域名列表（供中间件直接使用）
    @property
    def cors_origin_list(self) -> list[str]:
        return [item.strip() for item in self.cors_origins.split(",") if item.strip()]

    # Supabase JWKS 地址（优先使用配置值）
    @property
    def resolved_supabase_jwks_url(self) -> str | None:
        if self.supabase_jwks_url:
            return self.supabase_jwks_url
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/auth/v1/.well-known/jwks.json"

    # Supabase JWT issuer（优先使用配置值）
    @property
    def resolved_supabase_jwt_issuer(self) -> str | None:
        if self.supabase_jwt_issuer:
            return self.supabase_jwt_issuer
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    # 确保运行时数据目录存在（启动时创建必要目录）
    def ensure_dirs(self) -> None:
        for path in (self.data_dir, os.path.dirname(self.sqlite_path)):
            if path:
                os.makedirs(path, exist_ok=True)


# 全局配置实例
settings = Settings()
