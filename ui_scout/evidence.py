"""
Evidence capture: full-page and element screenshots, DOM snippets, finding ids.

Element-level capture is best effort: every failure yields ``None`` and the
finding is kept without that piece of evidence.
"""
from __future__ import annotations

import asyncio
import re
from itertools import count
from pathlib import Path
from typing import Any, Optional, Union

from ui_scout.cluster import normalize_selector
from ui_scout.logger import get_logger
from ui_scout.utils import md5_hex

__all__ = ("EvidenceCollector",)

log = get_logger("evidence")

_DOM_SNIPPET_JS = """(sel) => {
    const el = document.querySelector(sel);
    return el ? el.outerHTML : null;
}"""

_DOM_SNIPPET_LIMIT = 1000


class EvidenceCollector:
    """Writes screenshots under ``<output_dir>/screenshots`` and returns relative paths."""

    def __init__(self, output_dir: Union[str, Path]) -> None:
        self.output_dir = Path(output_dir)
        self.screenshots_dir = self.output_dir / "screenshots"
        self._index = count(1)

    def init(self) -> None:
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)

    async def capture_full_page(self, page: Any, page_url: str, viewport: str) -> str:
        filename = self._filename("page", page_url, viewport)
        await page.screenshot(path=str(self.screenshots_dir / filename), full_page=True)
        return f"screenshots/{filename}"

    async def capture_element(
        self,
        page: Any,
        selector: str,
        page_url: str,
        viewport: str,
        rule_id: str,
    ) -> Optional[str]:
        try:
            element = page.locator(selector).first
            if not await element.is_visible():
                return None
            filename = self._filename(rule_id, page_url, viewport)
            await element.scroll_into_view_if_needed()
            await asyncio.sleep(0.1)
            await element.screenshot(path=str(self.screenshots_dir / filename))
            return f"screenshots/{filename}"
        except Exception as exc:
            log.debug("Element screenshot skipped for %s on %s: %s", selector, page_url, exc)
            return None

    async def capture_dom_snippet(self, page: Any, selector: str) -> Optional[str]:
        try:
            html = await page.evaluate(_DOM_SNIPPET_JS, selector)
        except Exception as exc:
            log.debug("DOM snippet skipped for %s: %s", selector, exc)
            return None
        if not html:
            return None
        if len(html) > _DOM_SNIPPET_LIMIT:
            return html[:_DOM_SNIPPET_LIMIT] + "..."
        return html

    def generate_finding_id(self, rule_id: str, selector: str, page_url: str, viewport: str) -> str:
        digest = md5_hex(f"{rule_id}|{selector}|{page_url}|{viewport}")[:12]
        return f"{rule_id}|{normalize_selector(selector)}|{viewport}|{digest}"

    def _filename(self, prefix: str, url: str, viewport: str) -> str:
        index = next(self._index)
        safe_prefix = re.sub(r"[^a-z0-9-]", "-", prefix, flags=re.IGNORECASE)[:30]
        return f"{index:04d}-{safe_prefix}-{viewport}-{md5_hex(url)[:8]}.png"
