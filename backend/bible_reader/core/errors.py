from __future__ import annotations

from typing import Any

from fastapi import HTTPException


class ReaderError(Exception):
    """Base class for reader failures. ``kind`` is stable and keyed on by clients."""

    kind = "reader_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class BookNotFound(ReaderError):
    kind = "book_not_found"

    def __init__(self, book_id: int) -> None:
        super().__init__(f"Book {book_id} was not found.")
        self.book_id = book_id


class ChapterNotFound(ReaderError):
    kind = "chapter_not_found"

    def __init__(self, book_name: str, chapter_number: int) -> None:
        super().__init__(f"{book_name} has no chapter {chapter_number}.")
        self.book_name = book_name
        self.chapter_number = chapter_number


class VersionNotAvailableForChapter(ReaderError):
    """The chapter exists but this translation does not cover it (yet)."""

    kind = "version_not_available"

    def __init__(self, version_code: str, chapter_number: int) -> None:
        super().__init__(
            f"This version ({version_code}) isn't available yet for chapter {chapter_number}."
        )
        self.version_code = version_code
        self.chapter_number = chapter_number


class StoreError(ReaderError):
    kind = "store_error"

    def __init__(self, operation: str, message: str = "", **keys: Any) -> None:
        super().__init__(message or f"Scripture store call failed: {operation}.")
        self.operation = operation
        self.keys = keys


class Unauthenticated(ReaderError):
    kind = "unauthenticated"

    def __init__(self, message: str = "Sign in to continue.") -> None:
        super().__init__(message)


# 未找到类错误：在栏位内以内联错误展示，不自动重试
NOT_FOUND_ERRORS = (BookNotFound, ChapterNotFound, VersionNotAvailableForChapter)


# 路由层：领域错误转换为 HTTPException
def to_http_exception(exc: ReaderError) -> HTTPException:
    if isinstance(exc, NOT_FOUND_ERRORS):
        return HTTPException(status_code=404, detail=exc.to_detail())
    if isinstance(exc, Unauthenticated):
        return HTTPException(status_code=401, detail=exc.to_detail())
    if isinstance(exc, StoreError):
        return HTTPException(status_code=503, detail=exc.to_detail())
    return HTTPException(status_code=400, detail=exc.to_detail())
