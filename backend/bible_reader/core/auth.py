from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import jwt
from fastapi import Depends, Header, HTTPException
from jwt import PyJWKClient

from bible_reader.core.config import settings
from bible_reader.core.errors import Unauthenticated


# 已登录读者（来自 Supabase JWT）
@dataclass
class UserContext:
    user_id: str
    email: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)


_jwks_client: PyJWKClient | None = None
_jwks_url: str | None = None


def _get_jwks_client() -> PyJWKClient:
    global _jwks_client, _jwks_url
    jwks_url = settings.resolved_supabase_jwks_url
    if not jwks_url:
        raise HTTPException(status_code=500, detail="SUPABASE_JWKS_URL not configured.")
    if _jwks_client is None or _jwks_url != jwks_url:
        _jwks_client = PyJWKClient(jwks_url)
        _jwks_url = jwks_url
    return _jwks_client


# 根据 JWT 头部算法选择密钥：HS* 用共享密钥，其余走 JWKS
def _resolve_signing_key(token: str) -> tuple[Any, str]:
    header = jwt.get_unverified_header(token)
    alg = header.get("alg")
    if not alg or alg.lower() == "none":
        raise Unauthenticated("Invalid JWT algorithm.")
    if alg.startswith("HS"):
        if not settings.supabase_jwt_secret:
            raise HTTPException(
                status_code=500,
                detail="SUPABASE_JWT_SECRET not configured for HS* tokens.",
            )
        return settings.supabase_jwt_secret, alg
    return _get_jwks_client().get_signing_key_from_jwt(token).key, alg


def verify_supabase_jwt(token: str) -> dict[str, Any]:
    issuer = settings.resolved_supabase_jwt_issuer
    if not issuer:
        raise HTTPException(status_code=500, detail="SUPABASE_JWT_ISSUER not configured.")
    try:
        signing_key, alg = _resolve_signing_key(token)
        return jwt.decode(
            token,
            signing_key,
            algorithms=[alg],
            audience=settings.supabase_jwt_audience,
            issuer=issuer,
        )
    except jwt.PyJWTError as exc:
        raise Unauthenticated("Invalid JWT.") from exc


# 解析 Authorization 头；未携带时返回 None
def user_from_authorization(authorization: str) -> UserContext | None:
    if not authorization:
        return None
    if not authorization.startswith("Bearer "):
        raise Unauthenticated("Missing bearer token.")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise Unauthenticated("Missing JWT token.")

    claims = verify_supabase_jwt(token)
    user_id = claims.get("sub")
    if not user_id:
        raise Unauthenticated("Invalid JWT payload.")
    return UserContext(user_id=user_id, email=claims.get("email"), claims=claims)


def get_optional_user(authorization: str = Header(default="")) -> UserContext | None:
    try:
        return user_from_authorization(authorization)
    except Unauthenticated as exc:
        raise HTTPException(status_code=401, detail=exc.to_detail()) from exc


def get_current_user(authorization: str = Header(default="")) -> UserContext:
    user = get_optional_user(authorization)
    if user is None:
        raise HTTPException(
            status_code=401, detail=Unauthenticated("Missing Authorization header.").to_detail()
        )
    return user


AuthDependency = Depends(get_current_user)
OptionalAuthDependency = Depends(get_optional_user)
