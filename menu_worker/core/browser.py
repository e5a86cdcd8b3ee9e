"""Playwright browser session used for rendered search and menu extraction."""

from __future__ import annotations

import logging
import random
import time
from typing import Optional, Sequence

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from menu_worker.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1920, "height": 1080}
LAUNCH_ARGS = (
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--disable-gpu",
)
EXTRA_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
window.chrome = window.chrome || { runtime: {} };
"""
SCROLL_STEPS = 6


class BrowserSession:
    """One headless browser, context and page, released on every exit path.

    Use as a context manager; nothing is launched until ``__enter__``.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._playwright = None
        self._browser = None
        self._context = None
        self.page = None

    def __enter__(self) -> "BrowserSession":
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.settings.browser_headless,
                args=list(LAUNCH_ARGS),
            )
            self._context = self._browser.new_context(
                user_agent=USER_AGENT,
                viewport=VIEWPORT,
                locale="en-US",
                timezone_id="America/Toronto",
                extra_http_headers=EXTRA_HEADERS,
            )
            self._context.add_init_script(STEALTH_SCRIPT)
            self.page = self._context.new_page()
            self.page.set_default_timeout(self.settings.selector_timeout_ms)
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def goto(self, url: str) -> bool:
        """Navigate to `url`. A timeout is logged and reported as False, other errors propagate."""
        try:
            self.page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.settings.navigation_timeout_ms,
            )
            return True
        except PlaywrightTimeoutError:
            logger.warning("Navigation to %s timed out; continuing with partial content", url)
            return False

    def wait_for_any(self, selectors: Sequence[str], timeout_ms: Optional[int] = None) -> Optional[str]:
        """Wait for the first selector in `selectors` to attach; returns it or None."""
        total = timeout_ms or self.settings.selector_timeout_ms
        per_selector = max(total // max(len(selectors), 1), 500)
        for selector in selectors:
            try:
                self.page.wait_for_selector(selector, state="attached", timeout=per_selector)
                return selector
            except PlaywrightTimeoutError:
                logger.debug("Selector %s did not appear within %sms", selector, per_selector)
        return None

    def pause(self, minimum: Optional[float] = None, maximum: Optional[float] = None) -> float:
        """Sleep for a randomised, human-scale interval."""
        low = self.settings.human_delay_min if minimum is None else minimum
        high = self.settings.human_delay_max if maximum is None else maximum
        delay = random.uniform(low, max(low, high))
        time.sleep(delay)
        return delay

    def scroll_through(self, steps: int = SCROLL_STEPS) -> None:
        """Scroll to the bottom in steps to trigger lazy-loaded content, then back to the top."""
        for step in range(1, steps + 1):
            self.page.evaluate(
                "(fraction) => window.scrollTo(0, document.body.scrollHeight * fraction)",
                step / steps,
            )
            self.pause(0.3, 0.9)
        self.page.evaluate("() => window.scrollTo(0, 0)")

    def content(self) -> str:
        return self.page.content()

    def title(self) -> str:
        try:
            return self.page.title()
        except PlaywrightError:
            return ""

    def links(self, selector: str = "a[href]") -> list:
        return self.page.eval_on_selector_all(selector, "nodes => nodes.map(n => n.href)")

    @property
    def url(self) -> str:
        return self.page.url if self.page is not None else ""

    def close(self) -> None:
        for name in ("page", "_context", "_browser"):
            resource = getattr(self, name)
            if resource is None:
                continue
            try:
                resource.close()
            except PlaywrightError as exc:
                logger.debug("Ignoring error while closing %s: %s", name, exc)
            setattr(self, name, None)
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except PlaywrightError as exc:
                logger.debug("Ignoring error while stopping playwright: %s", exc)
            self._playwright = None
