"""
Browser layer: one shared Playwright browser acting as a factory of isolated
browsing contexts, plus the login / interaction step runners.
"""
from __future__ import annotations

import asyncio
import os
import re
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence

from ui_scout.config import (
    AuthConfig,
    ClickStep,
    HoverStep,
    NavigateStep,
    PressStep,
    ScrollStep,
    TypeStep,
    WaitForNavigationStep,
    WaitForSelectorStep,
    WaitStep,
)
from ui_scout.logger import get_logger
from ui_scout.models import ViewportConfig

__all__ = (
    "BrowserRunner",
    "apply_auth",
    "run_login_step",
    "run_interaction_step",
    "run_steps",
    "wait_for_stability",
    "expand_env",
)

log = get_logger("browser")

_ENV_RE = re.compile(r"\$\{(\w+)\}")


def _ms(seconds: Optional[float]) -> Optional[float]:
    return None if seconds is None else seconds * 1000


def expand_env(value: str) -> str:
    """Replace ``${NAME}`` with the environment variable (empty if unset)."""
    return _ENV_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)


class BrowserRunner:
    """Owns the Playwright driver and the shared browser process.

    Usage::

        async with BrowserRunner(headless=True) as runner:
            async with runner.isolated_page(viewport, "en-US") as page:
                await page.goto(url)
    """

    def __init__(self, headless: bool = True, timeout: float = 30.0, user_agent: Optional[str] = None) -> None:
        self.headless = headless
        self.timeout = timeout
        self.user_agent = user_agent
        self._playwright = None
        self._browser = None

    async def __aenter__(self) -> BrowserRunner:
        from playwright.async_api import async_playwright

        log.info("Launching chromium (headless=%s)", self.headless)
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        log.info("Browser closed")

    @asynccontextmanager
    async def isolated_page(self, viewport: ViewportConfig, locale: Optional[str] = None) -> AsyncIterator[Any]:
        """Fresh context + page; the context is closed on every exit path."""
        if self._browser is None:
            raise RuntimeError("Browser is not running. Use BrowserRunner as an async context manager.")
        options: dict[str, Any] = {
            "viewport": {"width": viewport.width, "height": viewport.height},
            "locale": locale or "en-US",
            "is_mobile": viewport.is_mobile,
            "has_touch": viewport.has_touch,
        }
        if self.user_agent:
            options["user_agent"] = self.user_agent
        context = await self._browser.new_context(**options)
        try:
            page = await context.new_page()
            page.set_default_timeout(self.timeout * 1000)
            yield page
        finally:
            await context.close()


async def apply_auth(page: Any, auth: AuthConfig) -> None:
    """Cookies, then extra headers, then the scripted login steps.

    Cookie and header values may reference ``${NAME}`` like typed text.
    """
    if auth.cookies:
        await page.context.add_cookies(
            [
                {
                    "name": c.name,
                    "value": expand_env(c.value),
                    "domain": c.domain,
                    "path": c.path,
                    "secure": c.secure,
                    "httpOnly": c.http_only,
                }
                for c in auth.cookies
            ]
        )
    if auth.headers:
        await page.set_extra_http_headers({name: expand_env(value) for name, value in auth.headers.items()})
    for step in auth.login_steps:
        await run_login_step(page, step)


async def run_login_step(page: Any, step: Any) -> None:
    if isinstance(step, NavigateStep):
        await page.goto(step.url, wait_until="networkidle", timeout=_ms(step.timeout))
    elif isinstance(step, TypeStep):
        await page.fill(step.selector, expand_env(step.value))
    elif isinstance(step, ClickStep):
        await page.click(step.selector)
    elif isinstance(step, WaitForNavigationStep):
        await page.wait_for_load_state("networkidle", timeout=_ms(step.timeout))
    elif isinstance(step, WaitForSelectorStep):
        await page.wait_for_selector(step.selector, timeout=_ms(step.timeout))
    else:
        raise TypeError(f"Unsupported login step: {step!r}")


async def run_interaction_step(page: Any, step: Any) -> None:
    if isinstance(step, ClickStep):
        await page.click(step.selector)
        await asyncio.sleep(0.3)
    elif isinstance(step, TypeStep):
        await page.fill(step.selector, expand_env(step.value))
    elif isinstance(step, HoverStep):
        await page.hover(step.selector)
    elif isinstance(step, ScrollStep):
        if step.x is not None and step.y is not None:
            await page.evaluate("([x, y]) => window.scrollTo(x, y)", [step.x, step.y])
        elif step.selector:
            await page.locator(step.selector).scroll_into_view_if_needed()
    elif isinstance(step, WaitStep):
        await asyncio.sleep(step.duration / 1000)
    elif isinstance(step, PressStep):
        await page.keyboard.press(step.key)
    else:
        raise TypeError(f"Unsupported interaction step: {step!r}")


async def run_steps(page: Any, steps: Sequence[Any]) -> None:
    for step in steps:
        await run_interaction_step(page, step)


async def wait_for_stability(page: Any, timeout: float = 3.0, interval: float = 0.1) -> bool:
    """Poll ``page.content()`` until two consecutive reads match.

    Returns False when *timeout* elapses first; that is not an error.
    """
    deadline = time.monotonic() + timeout
    last: Optional[str] = None
    while time.monotonic() < deadline:
        current = await page.content()
        if current == last:
            return True
        last = current
        await asyncio.sleep(interval)
    return False
