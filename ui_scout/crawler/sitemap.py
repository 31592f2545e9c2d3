"""
Sitemap discovery: well-known sitemap locations, robots.txt ``Sitemap:``
directives and recursive sitemap indexes.

Discovery never fails: when nothing is found the seed URL is returned alone.
"""
from __future__ import annotations

import asyncio
import gzip
import zlib
from typing import Iterable, List, Optional, Set, Tuple
from urllib.parse import urlparse

from aiohttp import ClientError, ClientSession, ClientTimeout
from lxml import etree

from ui_scout.crawler.robots import RobotsTxtRules
from ui_scout.crawler.urls import UrlFilter
from ui_scout.logger import get_logger
from ui_scout.utils import remove_duplicates

__all__ = ("SitemapDiscoverer", "parse_sitemap", "get_urls_from_sitemap", "COMMON_LOCATIONS")

COMMON_LOCATIONS: Tuple[str, ...] = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap/sitemap.xml",
    "/sitemaps/sitemap.xml",
)

_GZIP_MAGIC = b"\x1f\x8b"


def parse_sitemap(content: bytes) -> Tuple[str, List[str]]:
    """Parse sitemap XML and return ``(kind, locs)``.

    ``kind`` is ``"index"`` for ``<sitemapindex>``, ``"urlset"`` for
    ``<urlset>`` and ``""`` for anything else (including broken XML), in
    which case ``locs`` is empty.
    """
    if content.startswith(_GZIP_MAGIC):
        try:
            content = gzip.decompress(content)
        except (OSError, EOFError, zlib.error):
            return "", []
    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError:
        return "", []
    if root is None:
        return "", []

    tag = etree.QName(root).localname.lower()
    if tag == "sitemapindex":
        kind, path = "index", "./{*}sitemap/{*}loc"
    elif tag == "urlset":
        kind, path = "urlset", "./{*}url/{*}loc"
    else:
        return "", []
    return kind, [loc.text.strip() for loc in root.findall(path) if loc.text and loc.text.strip()]


class SitemapDiscoverer:
    """Discovers page URLs from a site's sitemap(s).

    Usable as an async context manager (owns its aiohttp session), with an
    externally managed ``session``, or bare: then every public call opens and
    closes a session of its own.
    """

    def __init__(
        self,
        max_urls: int = 100,
        allow_domains: Optional[Iterable[str]] = None,
        deny_patterns: Optional[Iterable[str]] = None,
        timeout: float = 10.0,
        user_agent: str = "UIScoutBot/1.0",
        session: Optional[ClientSession] = None,
    ) -> None:
        self.max_urls = max_urls
        self.timeout = timeout
        self.user_agent = user_agent
        self.url_filter = UrlFilter(allow_domains, deny_patterns)
        self.session = session
        self._owns_session = False
        self.logger = get_logger("crawler")

    async def __aenter__(self) -> SitemapDiscoverer:
        if self.session is None:
            self.session = ClientSession(headers={"User-Agent": self.user_agent})
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        if self._owns_session:
            self.session = None
            self._owns_session = False

    async def discover(self, base_url: str) -> List[str]:
        """Return sitemap URLs for the site of *base_url*, or ``[base_url]``.

        Without a session (not entered, none passed in) a throwaway one is
        opened for this call.
        """
        if self.session is None:
            async with self:
                return await self._discover(base_url)
        return await self._discover(base_url)

    async def _discover(self, base_url: str) -> List[str]:
        parsed = urlparse(base_url)
        origin = f"{parsed.scheme}://{parsed.netloc}"

        for location in COMMON_LOCATIONS:
            sitemap_url = f"{origin}{location}"
            urls = await self._crawl(sitemap_url)
            if urls:
                self.logger.info("Found sitemap at %s with %d URLs", sitemap_url, len(urls))
                return urls

        robots_body = await self._fetch(f"{origin}/robots.txt")
        if robots_body is not None:
            rules = RobotsTxtRules(robots_body.decode("utf-8", errors="replace"))
            if rules.sitemaps:
                urls = await self._crawl(rules.sitemaps[0])
                if urls:
                    self.logger.info("Found sitemap via robots.txt: %s (%d URLs)", rules.sitemaps[0], len(urls))
                    return urls

        self.logger.info("No sitemap found for %s, using the base URL only", base_url)
        return [base_url]

    async def crawl(self, sitemap_url: str) -> List[str]:
        """Fetch one sitemap (or index) and return filtered, capped URLs."""
        if self.session is None:
            async with self:
                return await self._crawl(sitemap_url)
        return await self._crawl(sitemap_url)

    async def _crawl(self, sitemap_url: str) -> List[str]:
        locs = await self._collect(sitemap_url, set())
        return self._filter(locs)

    async def _collect(self, sitemap_url: str, seen: Set[str]) -> List[str]:
        if sitemap_url in seen:
            return []
        seen.add(sitemap_url)

        content = await self._fetch(sitemap_url)
        if content is None:
            return []
        kind, locs = parse_sitemap(content)
        if kind == "urlset":
            return locs
        if kind != "index":
            self.logger.debug("Not a sitemap document: %s", sitemap_url)
            return []

        urls: List[str] = []
        for child in locs:
            child_urls = self._filter(await self._collect(child, seen))
            if len(urls) + len(child_urls) >= self.max_urls:
                urls.extend(child_urls[: self.max_urls - len(urls)])
                self.logger.debug("Sitemap index %s: max_urls=%d reached", sitemap_url, self.max_urls)
                break
            urls.extend(child_urls)
        return urls

    def _filter(self, urls: List[str]) -> List[str]:
        filtered = remove_duplicates(
            [u for u in urls if self.url_filter.domain_allowed(u) and not self.url_filter.denied(u)]
        )
        return filtered[: self.max_urls]

    async def _fetch(self, url: str) -> Optional[bytes]:
        """GET with one redirect at most; anything but HTTP 200 is ``None``."""
        try:
            async with self.session.get(
                url,
                timeout=ClientTimeout(total=self.timeout),
                allow_redirects=True,
                # aiohttp gives up when the hop count reaches the limit: one hop allowed
                max_redirects=2,
            ) as resp:
                if resp.status != 200:
                    self.logger.debug("Sitemap fetch %s -> HTTP %s", url, resp.status)
                    return None
                return await resp.read()
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            self.logger.debug("Sitemap fetch %s failed: %s", url, exc)
            return None


async def get_urls_from_sitemap(base_url: str, **options) -> List[str]:
    """Quick helper: discover sitemap URLs for *base_url* with a throwaway session."""
    async with SitemapDiscoverer(**options) as discoverer:
        return await discoverer.discover(base_url)
