import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from ui_scout.models import (
    Confidence,
    Finding,
    FindingCategory,
    FindingEvidence,
    Severity,
    ViewportConfig,
)


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str) -> None:
        self.page = page
        self.selector = selector

    @property
    def first(self) -> "FakeLocator":
        return self

    async def is_visible(self) -> bool:
        return self.selector not in self.page.hidden_selectors

    async def scroll_into_view_if_needed(self) -> None:
        self.page.calls.append(("scroll_into_view", self.selector))

    async def screenshot(self, path: str) -> None:
        if self.selector in self.page.broken_selectors:
            raise RuntimeError(f"element detached: {self.selector}")
        self.page.calls.append(("element_screenshot", self.selector))
        Path(path).write_bytes(b"png")


class FakeKeyboard:
    def __init__(self, page: "FakePage") -> None:
        self.page = page

    async def press(self, key: str) -> None:
        self.page.calls.append(("press", key))


class FakeContext:
    def __init__(self) -> None:
        self.cookies: List[dict] = []
        self.closed = False

    async def add_cookies(self, cookies: List[dict]) -> None:
        self.cookies.extend(cookies)

    async def close(self) -> None:
        self.closed = True


class FakePage:
    """Minimal stand-in for a Playwright page driven by a url -> html map."""

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        *,
        fail_urls: Optional[Dict[str, Exception]] = None,
        goto_delay: float = 0.0,
        contents: Optional[List[str]] = None,
    ) -> None:
        self.pages = pages or {}
        self.fail_urls = fail_urls or {}
        self.goto_delay = goto_delay
        self.contents = list(contents or [])
        self.url = ""
        self.context = FakeContext()
        self.keyboard = FakeKeyboard(self)
        self.calls: List[tuple] = []
        self.visits: List[str] = []
        self.extra_headers: Dict[str, str] = {}
        self.hidden_selectors: set = set()
        self.broken_selectors: set = set()
        self.default_timeout: Optional[float] = None

    def set_default_timeout(self, timeout: float) -> None:
        self.default_timeout = timeout

    async def goto(self, url: str, wait_until: str = "load", timeout: Optional[float] = None) -> None:
        self.visits.append(url)
        if self.goto_delay:
            await asyncio.sleep(self.goto_delay)
        if url in self.fail_urls:
            raise self.fail_urls[url]
        self.url = url

    async def content(self) -> str:
        if self.contents:
            return self.contents.pop(0)
        return self.pages.get(self.url, "<html><body></body></html>")

    async def screenshot(self, path: str, full_page: bool = False) -> None:
        self.calls.append(("screenshot", full_page))
        Path(path).write_bytes(b"png")

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    async def evaluate(self, script: str, arg=None):
        self.calls.append(("evaluate", arg))
        return None

    async def set_extra_http_headers(self, headers: Dict[str, str]) -> None:
        self.extra_headers.update(headers)

    async def fill(self, selector: str, value: str) -> None:
        self.calls.append(("fill", selector, value))

    async def click(self, selector: str) -> None:
        self.calls.append(("click", selector))

    async def hover(self, selector: str) -> None:
        self.calls.append(("hover", selector))

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[float] = None) -> None:
        self.calls.append(("wait_for_load_state", state))

    async def wait_for_selector(self, selector: str, timeout: Optional[float] = None) -> None:
        self.calls.append(("wait_for_selector", selector))


class FakeRunner:
    """Context factory that records how many contexts are open at once."""

    def __init__(self, page_factory: Optional[Callable[[], FakePage]] = None) -> None:
        self.page_factory = page_factory or FakePage
        self.open_contexts = 0
        self.peak = 0
        self.opened = 0
        self.closed = 0
        self.events: List[tuple] = []

    @asynccontextmanager
    async def isolated_page(self, viewport: ViewportConfig, locale: Optional[str] = None):
        page = self.page_factory()
        self.opened += 1
        self.open_contexts += 1
        self.peak = max(self.peak, self.open_contexts)
        self.events.append(("open", viewport.name))
        try:
            yield page
        finally:
            await page.context.close()
            self.open_contexts -= 1
            self.closed += 1
            self.events.append(("close", viewport.name))


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def make_finding() -> Callable[..., Finding]:
    """Factory for findings with sensible defaults."""
    counter = iter(range(1, 10_000))

    def _make(
        *,
        page_url: str = "https://shop.test/products/1",
        selector: Optional[str] = "div.card > button",
        severity: Severity = Severity.MEDIUM,
        confidence: Confidence = Confidence.LIKELY,
        viewport: str = "desktop",
        rule_id: Optional[str] = "touch-target-size",
        category: FindingCategory = FindingCategory.USABILITY,
        description: str = "Button is too small",
    ) -> Finding:
        n = next(counter)
        return Finding(
            id=f"f-{n}",
            category=category,
            severity=severity,
            confidence=confidence,
            page_url=page_url,
            viewport=viewport,
            title=f"Finding {n}",
            description=description,
            evidence=FindingEvidence(selectors=[selector] if selector else []),
            rule_id=rule_id,
            tool="test",
        )

    return _make
