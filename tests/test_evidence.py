# File: tests/test_evidence.py
import re

import pytest

from tests.conftest import FakePage
from ui_scout.evidence import EvidenceCollector


class SnippetPage(FakePage):
    def __init__(self, snippet):
        super().__init__()
        self.snippet = snippet

    async def evaluate(self, script, arg=None):
        if isinstance(self.snippet, Exception):
            raise self.snippet
        return self.snippet


@pytest.fixture()
def collector(tmp_path) -> EvidenceCollector:
    c = EvidenceCollector(tmp_path / "out")
    c.init()
    return c


@pytest.mark.asyncio()
async def test_full_page_screenshot(collector):
    page = FakePage()
    rel = await collector.capture_full_page(page, "https://a.test/", "mobile")
    assert re.fullmatch(r"screenshots/0001-page-mobile-[0-9a-f]{8}\.png", rel)
    assert (collector.output_dir / rel).exists()
    assert page.calls == [("screenshot", True)]

    second = await collector.capture_full_page(page, "https://a.test/", "mobile")
    assert second.startswith("screenshots/0002-")


@pytest.mark.asyncio()
async def test_element_screenshot_best_effort(collector):
    page = FakePage()
    page.hidden_selectors.add(".hidden")
    page.broken_selectors.add(".detached")

    ok = await collector.capture_element(page, "button.buy", "https://a.test/", "desktop", "touch target")
    assert ok is not None and "-touch-target-desktop-" in ok
    assert (collector.output_dir / ok).exists()

    assert await collector.capture_element(page, ".hidden", "https://a.test/", "desktop", "r") is None
    assert await collector.capture_element(page, ".detached", "https://a.test/", "desktop", "r") is None


@pytest.mark.asyncio()
async def test_dom_snippet_truncation(collector):
    assert await collector.capture_dom_snippet(SnippetPage("<b>x</b>"), "b") == "<b>x</b>"
    long = await collector.capture_dom_snippet(SnippetPage("x" * 1500), "div")
    assert len(long) == 1003 and long.endswith("...")
    assert await collector.capture_dom_snippet(SnippetPage(None), "div") is None
    assert await collector.capture_dom_snippet(SnippetPage(RuntimeError("boom")), "div") is None


def test_finding_id_uses_normalized_selector(collector):
    a = collector.generate_finding_id("contrast", "li:nth-child(2) a", "https://a.test/", "desktop")
    b = collector.generate_finding_id("contrast", "li:nth-child(2) a", "https://a.test/", "desktop")
    assert a == b
    assert a.startswith("contrast|li a|desktop|")
