"""ui_scout.utils: Вспомогательные функции для списков URL, длительностей и хешей."""

from __future__ import annotations

import hashlib
from typing import Collection, List, Sequence

from ui_scout.logger import logger

__all__: Sequence[str] = (
    "remove_duplicates",
    "format_duration",
    "md5_hex",
    "truncate",
)


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique


def format_duration(seconds: float) -> str:
    """Форматирует длительность как ``"1m 5s"`` или ``"42s"``."""
    total = int(seconds)
    minutes, rest = divmod(total, 60)
    if minutes > 0:
        return f"{minutes}m {rest}s"
    return f"{total}s"


def md5_hex(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def truncate(text: str, max_length: int) -> str:
    """Обрезает строку до max_length символов, добавляя ``...``."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
