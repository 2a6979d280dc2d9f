from __future__ import annotations

import time

import jwt
import pytest

from bible_reader.core.auth import user_from_authorization
from bible_reader.core.config import settings
from bible_reader.core.errors import (
    BookNotFound,
    StoreError,
    Unauthenticated,
    VersionNotAvailableForChapter,
    to_http_exception,
)
from bible_reader.core.versions import (
    book_display_name,
    is_highlight_color,
    list_versions,
    normalize_version_code,
)

SECRET = "auth-test-secret-0123456789abcdef0123456789"
ISSUER = "https://auth-test.supabase.co/auth/v1"


@pytest.fixture(autouse=True)
def jwt_settings(monkeypatch):
    monkeypatch.setattr(settings, "supabase_jwt_secret", SECRET)
    monkeypatch.setattr(settings, "supabase_jwt_issuer", ISSUER)
    monkeypatch.setattr(settings, "supabase_jwt_audience", "authenticated")


def make_token(**overrides) -> str:
    claims = {
        "sub": "user-1",
        "aud": "authenticated",
        "iss": ISSUER,
        "exp": int(time.time()) + 600,
    }
    claims.update(overrides)
    return jwt.encode(claims, SECRET, algorithm="HS256")


def test_missing_header_means_signed_out() -> None:
    assert user_from_authorization("") is None


def test_valid_token() -> None:
    user = user_from_authorization(f"Bearer {make_token(email='leitor@example.com')}")
    assert user.user_id == "user-1"
    assert user.email == "leitor@example.com"


@pytest.mark.parametrize(
    "header",
    [
        "Token abc",
        "Bearer ",
        "Bearer not.a.jwt",
    ],
)
def test_malformed_headers(header: str) -> None:
    with pytest.raises(Unauthenticated):
        user_from_authorization(header)


def test_expired_or_foreign_tokens() -> None:
    with pytest.raises(Unauthenticated):
        user_from_authorization(f"Bearer {make_token(exp=int(time.time()) - 10)}")
    with pytest.raises(Unauthenticated):
        user_from_authorization(f"Bearer {make_token(iss='https://other.example/auth/v1')}")
    with pytest.raises(Unauthenticated):
        user_from_authorization(f"Bearer {make_token(aud='anon')}")
    with pytest.raises(Unauthenticated):
        user_from_authorization(f"Bearer {make_token(sub='')}")


def test_unsigned_token_rejected() -> None:
    token = jwt.encode({"sub": "user-1"}, None, algorithm="none")
    with pytest.raises(Unauthenticated):
        user_from_authorization(f"Bearer {token}")


def test_error_status_codes() -> None:
    assert to_http_exception(BookNotFound(9)).status_code == 404
    assert to_http_exception(VersionNotAvailableForChapter("XYZ", 1)).status_code == 404
    assert to_http_exception(Unauthenticated()).status_code == 401
    assert to_http_exception(StoreError("get_verses")).status_code == 503


def test_version_codes() -> None:
    assert normalize_version_code(" acf ") == "ACF"
    assert normalize_version_code("Berean Study Bible") == "BSB"
    assert normalize_version_code("XYZ") is None
    assert normalize_version_code(None) is None
    assert [item["code"] for item in list_versions(frozenset({"KJF", "AA"}))] == [
        "ACF",
        "ARA",
        "NAA",
        "NVT",
        "BSB",
    ]


def test_book_display_name() -> None:
    assert book_display_name("Gênesis", "Genesis", "BSB") == "Genesis"
    assert book_display_name("Gênesis", "Genesis", "ACF") == "Gênesis"
    assert book_display_name("Apêndice", None, "BSB") == "Apêndice"


def test_highlight_colors() -> None:
    assert is_highlight_color("orange")
    assert not is_highlight_color("pink")
    assert not is_highlight_color(None)
