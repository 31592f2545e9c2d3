"""ui_scout.exceptions: Ошибки, прерывающие запуск до начала обхода."""

from __future__ import annotations

__all__ = ["ConfigError"]


class ConfigError(ValueError):
    """Invalid configuration, custom rule file or analyzer reference.

    Raised before any crawling starts; the CLI turns it into exit code 2.
    """
