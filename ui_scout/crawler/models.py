"""
Data models for the UIScout crawler.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class CrawlQueueItem:
    """A discovered link waiting in the BFS frontier; consumed exactly once."""

    url: str
    depth: int
    referrer: Optional[str] = None
