from __future__ import annotations

from typing import Dict, Tuple


# 可对照的圣经译本（code -> 展示名）
BIBLE_VERSIONS: Dict[str, str] = {
    "ACF": "Almeida Corrigida Fiel",
    "AA": "Almeida Atualizada",
    "ARA": "Almeida Revista e Atualizada",
    "NAA": "Nova Almeida Atualizada",
    "NVT": "Nova Versão Transformadora",
    "KJF": "King James 1611",
    "BSB": "Berean Study Bible",
}

# 使用 alternate_name 作为书名的译本
ALTERNATE_NAME_VERSIONS = frozenset({"BSB"})

# 高亮颜色（key -> 背景色）
HIGHLIGHT_COLORS: Dict[str, str] = {
    "yellow": "#FFF3B0",
    "blue": "#C1E3FF",
    "red": "#FFD6DB",
    "purple": "#DED4FF",
    "green": "#E8FAD5",
    "orange": "#FFE4D3",
}


def normalize_version_code(value: str | None) -> str | None:
    if not value:
        return None
    candidate = value.strip().upper()
    if candidate in BIBLE_VERSIONS:
        return candidate
    # 允许传展示名
    for code, name in BIBLE_VERSIONS.items():
        if name.lower() == value.strip().lower():
            return code
    return None


# BSB 等译本使用另一套书名（如英文书名），缺失时回退到主书名
def book_display_name(name: str, alternate_name: str | None, version_code: str | None) -> str:
    if version_code in ALTERNATE_NAME_VERSIONS and alternate_name:
        return alternate_name
    return name


def version_display_name(code: str) -> str:
    return BIBLE_VERSIONS.get(code, code)


def list_versions(hidden: frozenset[str] | set[str] = frozenset()) -> Tuple[dict[str, str], ...]:
    return tuple(
        {"code": code, "name": name} for code, name in BIBLE_VERSIONS.items() if code not in hidden
    )


def is_highlight_color(value: str | None) -> bool:
    return bool(value) and value in HIGHLIGHT_COLORS
