"""Render & extraction engine for marketplace listing pages."""

from __future__ import annotations

import logging
import time
from typing import Callable, ContextManager, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError

from menu_worker.core.alerts import AlertSink
from menu_worker.core.browser import BrowserSession
from menu_worker.core.config import Settings, get_settings
from menu_worker.core.menu_parser import (
    DYNAMIC_CONTENT_SELECTORS,
    extract_items,
    extract_restaurant_name,
    looks_blocked,
)
from menu_worker.models import MenuItem, RestaurantMenu, ScrapeAttempt

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BASE_BACKOFF_SECONDS = 1.0


class ExtractionTransportError(RuntimeError):
    """The listing could not be loaded at all (browser launch or network failure)."""


class MenuExtractor:
    """Loads one listing per call and runs the extraction cascade against it.

    States per call: load -> wait for dynamic content -> sectioned extraction ->
    page-wide price-anchored extraction -> scroll and retry -> zero-item outcome.
    The browser session is opened and closed inside ``extract`` on every path.
    """

    def __init__(
        self,
        sink: AlertSink,
        *,
        settings: Optional[Settings] = None,
        session_factory: Optional[Callable[[], ContextManager[BrowserSession]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sink = sink
        self.settings = settings or get_settings()
        self._session_factory = session_factory or (lambda: BrowserSession(self.settings))
        self._clock = clock

    def extract(self, listing_url: str) -> RestaurantMenu:
        started = self._clock()
        try:
            items, method, restaurant_name = self._run(listing_url)
        except ExtractionTransportError as exc:
            self._record("error", listing_url, "playwright", started, 0, False, str(exc))
            raise

        self._record(
            "scrape",
            listing_url,
            method or "cascade-exhausted",
            started,
            len(items),
            bool(items),
            None if items else "no menu items found",
        )
        if not items:
            logger.warning("No menu items found at %s", listing_url)
        return RestaurantMenu(
            restaurant_name=restaurant_name,
            source_url=listing_url,
            items=tuple(items),
        )

    def _run(self, listing_url: str) -> Tuple[List[MenuItem], Optional[str], str]:
        try:
            with self._session_factory() as browser:
                browser.goto(listing_url)
                matched = browser.wait_for_any(DYNAMIC_CONTENT_SELECTORS)
                logger.debug("Dynamic content marker for %s: %s", listing_url, matched)
                browser.pause()

                html = browser.content()
                restaurant_name = extract_restaurant_name(html, listing_url)
                items, method = extract_items(html, listing_url)
                if items:
                    return items, method, restaurant_name

                if looks_blocked(html, browser.title()):
                    logger.warning("Listing %s served a bot-wall page; giving up on this attempt", listing_url)
                    return [], "blocked", restaurant_name

                logger.info("No items on first pass for %s; scrolling to load more", listing_url)
                browser.scroll_through()
                browser.pause()
                html = browser.content()
                items, method = extract_items(html, listing_url)
                if items:
                    return items, f"scroll-retry:{method}", restaurant_name
                return [], None, restaurant_name
        except PlaywrightError as exc:
            raise ExtractionTransportError(f"Failed to load {listing_url}: {exc}") from exc

    def _record(
        self,
        kind: str,
        target: str,
        method: str,
        started: float,
        count: int,
        success: bool,
        error: Optional[str],
    ) -> None:
        self.sink.record(
            ScrapeAttempt(
                kind=kind,
                target=target,
                method=method,
                duration_ms=max(0, int((self._clock() - started) * 1000)),
                item_count=count,
                success=success,
                error_summary=error,
            )
        )


def scrape_with_retry(
    extractor: MenuExtractor,
    listing_url: str,
    *,
    retries: int = MAX_RETRIES,
    base_delay: float = BASE_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> RestaurantMenu:
    """Call ``extractor.extract`` retrying transport faults with 1s, 2s, 4s backoff."""

    attempt = 0
    while True:
        attempt += 1
        try:
            logger.info("Scraping %s (attempt %s/%s)", listing_url, attempt, retries + 1)
            return extractor.extract(listing_url)
        except ExtractionTransportError as exc:
            logger.warning("Scrape attempt %s/%s failed: %s", attempt, retries + 1, exc)
            if attempt > retries:
                logger.error("Scraping %s exhausted retries", listing_url)
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.info("Retrying in %.1fs", delay)
            sleep(delay)
