"""ui_scout.crawler: Поиск страниц сайта (sitemap и обход в ширину)."""

from ui_scout.crawler.bfs import BfsCrawler
from ui_scout.crawler.sitemap import SitemapDiscoverer, get_urls_from_sitemap
from ui_scout.crawler.urls import UrlFilter, normalize_url

__all__ = ["BfsCrawler", "SitemapDiscoverer", "get_urls_from_sitemap", "UrlFilter", "normalize_url"]
