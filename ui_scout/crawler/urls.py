"""
URL normalization and allow/deny filtering shared by sitemap discovery and BFS.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence, Union
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

__all__ = ("TRACKING_PARAMS", "normalize_url", "UrlFilter")

TRACKING_PARAMS: frozenset[str] = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "ref",
        "fbclid",
        "gclid",
    }
)


def normalize_url(url: str) -> str:
    """
    Canonicalize *url* into a visited-set key.

    Lowercases scheme and host, drops the fragment, strips a trailing slash
    (except for the root path), removes tracking parameters and sorts the
    remaining query parameters. Unparseable input is returned unchanged.
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url
    if not parsed.scheme or not parsed.netloc:
        return url

    path = parsed.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"

    qs = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k not in TRACKING_PARAMS]
    qs.sort()
    query = urlencode(qs, doseq=True)
    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, "", query, ""))


class UrlFilter:
    """
    Allow-domain and deny-pattern checks.

    Deny patterns are regular expressions searched anywhere in the URL;
    a pattern that does not compile falls back to plain substring matching.
    """

    def __init__(
        self,
        allow_domains: Optional[Iterable[str]] = None,
        deny_patterns: Optional[Iterable[str]] = None,
    ) -> None:
        self.allow_domains: List[str] = [d.lower().lstrip(".") for d in (allow_domains or []) if d]
        self._deny: List[Union[re.Pattern[str], str]] = []
        for pattern in deny_patterns or []:
            try:
                self._deny.append(re.compile(pattern))
            except re.error:
                self._deny.append(pattern)

    def domain_allowed(self, url: str) -> bool:
        if not self.allow_domains:
            return True
        host = (urlparse(url).hostname or "").lower()
        return any(host == d or host.endswith(f".{d}") for d in self.allow_domains)

    def denied(self, url: str) -> bool:
        for pattern in self._deny:
            if isinstance(pattern, str):
                if pattern in url:
                    return True
            elif pattern.search(url):
                return True
        return False

    def allows(self, url: str, same_host: Optional[str] = None) -> bool:
        """True if *url* is http(s), on *same_host* (when given) and passes both lists."""
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return False
        if same_host is not None and parsed.hostname.lower() != same_host.lower():
            return False
        return self.domain_allowed(url) and not self.denied(url)

    def apply(self, urls: Sequence[str]) -> List[str]:
        return [u for u in urls if self.allows(u)]
