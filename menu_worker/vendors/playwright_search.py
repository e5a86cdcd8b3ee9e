"""Rendered-page search adapter: drives DuckDuckGo through a stealth browser."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional
from urllib.parse import quote_plus

from playwright.sync_api import Error as PlaywrightError

from menu_worker.core.browser import BrowserSession
from menu_worker.core.config import Settings
from menu_worker.core.menu_parser import looks_blocked
from menu_worker.models import SearchCandidate
from menu_worker.vendors.base import AdapterTransportError, SearchAdapter, filter_listing_urls

logger = logging.getLogger(__name__)

SEARCH_URL = "https://duckduckgo.com/?q={query}"
RESULT_SELECTORS = (
    "[data-testid='result']",
    "article[data-nrn='result']",
    "#links",
    "a[href]",
)


class PlaywrightSearchAdapter(SearchAdapter):
    name = "playwright"

    def __init__(
        self,
        settings: Settings,
        session_factory: Optional[Callable[[], BrowserSession]] = None,
    ) -> None:
        super().__init__(settings)
        self._session_factory = session_factory or (lambda: BrowserSession(settings))

    def search(self, restaurant_name: str) -> List[SearchCandidate]:
        query = self.build_query(restaurant_name)
        url = SEARCH_URL.format(query=quote_plus(query))
        logger.info("Rendering search page %s", url)

        try:
            with self._session_factory() as browser:
                browser.goto(url)
                matched = browser.wait_for_any(RESULT_SELECTORS)
                if matched is None:
                    logger.info("No standard result selectors appeared; continuing anyway")
                browser.pause()

                title = browser.title()
                if looks_blocked(browser.content(), title) or "sorry" in browser.url:
                    logger.warning("Rendered search hit a CAPTCHA or block page (title=%s)", title)
                    return []

                host = self.settings.marketplace_host.removeprefix("www.")
                hrefs = browser.links(f"a[href*='{host}']")
        except PlaywrightError as exc:
            raise AdapterTransportError(f"Rendered search failed: {exc}") from exc

        urls = filter_listing_urls(hrefs, self.settings.marketplace_host)
        logger.info("Rendered search found %d listing URLs", len(urls))
        return [self.candidate(restaurant_name, listing) for listing in urls]
