"""DuckDuckGo lightweight HTML endpoint adapter."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from menu_worker.core.config import Settings
from menu_worker.models import SearchCandidate
from menu_worker.vendors.base import (
    BROWSER_HEADERS,
    AdapterTransportError,
    SearchAdapter,
    extract_listing_urls_from_text,
    filter_listing_urls,
    unwrap_redirect,
)

logger = logging.getLogger(__name__)

SEARCH_URL = "https://html.duckduckgo.com/html/"


class DuckDuckGoHtmlAdapter(SearchAdapter):
    name = "duckduckgo"

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        super().__init__(settings)
        self.session = session or requests.Session()

    def build_query(self, restaurant_name: str) -> str:
        host = self.settings.marketplace_host.removeprefix("www.")
        return f"{restaurant_name.strip()} site:{host}"

    def search(self, restaurant_name: str) -> List[SearchCandidate]:
        query = self.build_query(restaurant_name)
        logger.info("Querying DuckDuckGo HTML for query=%s", query)
        try:
            response = self.session.get(
                SEARCH_URL,
                params={"q": query},
                headers=BROWSER_HEADERS,
                timeout=self.settings.http_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise AdapterTransportError(f"DuckDuckGo request failed: {exc}") from exc

        if response.status_code == 202:
            # DuckDuckGo answers 202 with an anomaly page when it rate limits.
            logger.warning("DuckDuckGo throttled the request (status=202)")
            return []
        if response.status_code != 200:
            raise AdapterTransportError(f"DuckDuckGo returned status {response.status_code}")

        return self.parse(restaurant_name, response.text)

    def parse(self, restaurant_name: str, html: str) -> List[SearchCandidate]:
        host = self.settings.marketplace_host
        soup = BeautifulSoup(html or "", "html.parser")

        titles: Dict[str, str] = {}
        hrefs: List[str] = []
        for anchor in soup.select("a.result__a[href], a.result__url[href]"):
            url = unwrap_redirect(anchor["href"], SEARCH_URL)
            hrefs.append(url)
            titles.setdefault(url, anchor.get_text(" ", strip=True))

        urls = filter_listing_urls(hrefs, host)
        if not urls:
            urls = extract_listing_urls_from_text(html, host)
            if not urls:
                logger.info("No listing URLs in DuckDuckGo results; preview=%s", (html or "")[:300])

        return [self.candidate(restaurant_name, url, title=titles.get(url)) for url in urls]
