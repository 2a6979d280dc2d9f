from __future__ import annotations

from bible_reader.core.schemas import NoticeOut


# 面向读者的临时提示（toast），渲染时一次性取走
class Notifier:
    def __init__(self) -> None:
        self._pending: list[NoticeOut] = []

    def info(self, title: str, message: str = "") -> None:
        self._pending.append(NoticeOut(level="info", title=title, message=message))

    def error(self, title: str, message: str = "") -> None:
        self._pending.append(NoticeOut(level="error", title=title, message=message))

    @property
    def pending(self) -> list[NoticeOut]:
        return list(self._pending)

    def drain(self) -> list[NoticeOut]:
        notices, self._pending = self._pending, []
        return notices
