"""
Breadth-first crawler that discovers same-site pages by following links in a
browser page.

The crawler owns its visited / disallowed state; call :meth:`BfsCrawler.reset`
between independent seeds.
"""
from __future__ import annotations

from collections import deque
from typing import Any, Callable, Deque, Iterable, List, Optional, Set
from urllib.parse import urljoin, urlparse

from aiohttp import ClientSession
from bs4 import BeautifulSoup
from bs4.element import Tag

from ui_scout.crawler.models import CrawlQueueItem
from ui_scout.crawler.robots import fetch_robots, is_disallowed
from ui_scout.crawler.urls import UrlFilter, normalize_url
from ui_scout.logger import get_logger

__all__ = ("BfsCrawler", "extract_links")

_SKIP_PREFIXES = ("mailto:", "tel:", "javascript:", "#")

PageVisitedCallback = Callable[[str, int], None]


def extract_links(html: str, page_url: str) -> List[str]:
    """
    Extract absolute http(s) link targets from HTML, resolved against *page_url*.

    Skips mailto:, tel:, javascript: and fragment-only links. Order is the
    document order; duplicates are kept for the caller to filter.
    """
    soup = BeautifulSoup(html, "html.parser")
    links: List[str] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if not raw or raw.lower().startswith(_SKIP_PREFIXES):
            continue
        try:
            absolute = urljoin(page_url, raw)
            parsed = urlparse(absolute)
        except ValueError:
            continue
        if parsed.scheme in ("http", "https"):
            links.append(absolute)
    return links


class BfsCrawler:
    """Queue-driven BFS over :class:`CrawlQueueItem`, bounded by depth and page count."""

    def __init__(
        self,
        max_pages: int = 50,
        max_depth: int = 3,
        allow_domains: Optional[Iterable[str]] = None,
        deny_patterns: Optional[Iterable[str]] = None,
        respect_robots_txt: bool = True,
        same_domain_only: bool = True,
        nav_timeout: float = 15.0,
        user_agent: str = "UIScoutBot/1.0",
        session: Optional[ClientSession] = None,
    ) -> None:
        self.max_pages = max_pages
        self.max_depth = max_depth
        self.respect_robots_txt = respect_robots_txt
        self.same_domain_only = same_domain_only
        self.nav_timeout = nav_timeout
        self.user_agent = user_agent
        self.session = session
        self.url_filter = UrlFilter(allow_domains, deny_patterns)
        self.visited: Set[str] = set()
        self.disallowed_paths: Set[str] = set()
        self.logger = get_logger("crawler")

    async def crawl(
        self,
        start_url: str,
        page: Any,
        on_page_visited: Optional[PageVisitedCallback] = None,
    ) -> List[str]:
        """
        Crawl from *start_url* using *page* (a Playwright page or compatible).

        Returns discovered URLs in discovery order, which is breadth-first:
        every depth-d page comes before any depth-(d+1) page.
        """
        self.logger.info("Crawl started: %s (max_pages=%d, max_depth=%d)", start_url, self.max_pages, self.max_depth)
        start_host = urlparse(start_url).hostname or ""
        if self.respect_robots_txt:
            await self._load_robots(start_url)

        discovered: List[str] = []
        queue: Deque[CrawlQueueItem] = deque([CrawlQueueItem(start_url, 0)])
        queued: Set[str] = {normalize_url(start_url)}

        while queue and len(discovered) < self.max_pages:
            item = queue.popleft()
            key = normalize_url(item.url)

            if key in self.visited:
                continue
            if item.depth > self.max_depth:
                continue
            if not self._is_allowed(item.url, start_host):
                self.logger.debug("Skipped by robots.txt or filters: %s", item.url)
                continue

            self.visited.add(key)
            discovered.append(item.url)
            if on_page_visited is not None:
                on_page_visited(item.url, item.depth)

            if len(discovered) >= self.max_pages:
                break
            if item.depth >= self.max_depth:
                continue

            try:
                links = await self._load_links(page, item.url)
            except Exception as exc:
                self.logger.warning("Failed to crawl %s: %s", item.url, exc)
                continue

            for link in links:
                link_key = normalize_url(link)
                if link_key in self.visited or link_key in queued:
                    continue
                if not self._passes_filters(link, start_host):
                    continue
                queued.add(link_key)
                queue.append(CrawlQueueItem(link, item.depth + 1, referrer=item.url))

        self.logger.info("Crawl finished: %d pages", len(discovered))
        return discovered

    def reset(self) -> None:
        """Reset crawler state for reuse with another seed."""
        self.visited.clear()
        self.disallowed_paths.clear()

    async def _load_links(self, page: Any, url: str) -> List[str]:
        await page.goto(url, wait_until="domcontentloaded", timeout=self.nav_timeout * 1000)
        html = await page.content()
        return extract_links(html, page.url or url)

    def _passes_filters(self, url: str, start_host: str) -> bool:
        same_host = start_host if self.same_domain_only else None
        return self.url_filter.allows(url, same_host)

    def _is_allowed(self, url: str, start_host: str) -> bool:
        path = urlparse(url).path or "/"
        if self.disallowed_paths and is_disallowed(path, self.disallowed_paths):
            return False
        return self._passes_filters(url, start_host)

    async def _load_robots(self, start_url: str) -> None:
        parsed = urlparse(start_url)
        origin = f"{parsed.scheme}://{parsed.netloc}"
        if self.session is not None:
            rules = await fetch_robots(self.session, origin)
        else:
            async with ClientSession(headers={"User-Agent": self.user_agent}) as session:
                rules = await fetch_robots(session, origin)
        if rules is not None:
            self.disallowed_paths.update(rules.disallowed_paths())
            self.logger.debug("robots.txt: %d disallowed prefixes", len(self.disallowed_paths))
