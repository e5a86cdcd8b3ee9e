"""Direct URL heuristic: guess listing slugs from the restaurant name and probe them."""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import List, Optional

import requests

from menu_worker.core.config import Settings
from menu_worker.core.url_validator import is_listing_url
from menu_worker.models import SearchCandidate
from menu_worker.vendors.base import BROWSER_HEADERS, AdapterTransportError, SearchAdapter

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 5


def slugify(name: str) -> str:
    """'Café Olé & Co.' -> 'cafe-ole-co'."""
    ascii_name = unicodedata.normalize("NFKD", name or "").encode("ascii", "ignore").decode("ascii")
    cleaned = re.sub(r"[^a-z0-9\s-]", "", ascii_name.lower())
    return re.sub(r"[\s-]+", "-", cleaned).strip("-")


class DirectUrlAdapter(SearchAdapter):
    name = "direct_url"

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        super().__init__(settings)
        self.session = session or requests.Session()

    def candidate_urls(self, restaurant_name: str) -> List[str]:
        slug = slugify(restaurant_name)
        if not slug:
            return []
        base = self.settings.marketplace_base_url.rstrip("/")
        region = self.settings.marketplace_region
        urls = []
        for suffix in self.settings.direct_url_suffixes:
            url = f"{base}/{region}/store/{slug}{suffix}"
            if url not in urls and is_listing_url(url):
                urls.append(url)
        return urls

    def search(self, restaurant_name: str) -> List[SearchCandidate]:
        urls = self.candidate_urls(restaurant_name)
        found: List[SearchCandidate] = []
        failures = 0
        for url in urls:
            try:
                response = self.session.get(
                    url,
                    headers=BROWSER_HEADERS,
                    timeout=PROBE_TIMEOUT,
                    allow_redirects=True,
                )
            except requests.RequestException as exc:
                failures += 1
                logger.debug("Direct URL probe failed for %s: %s", url, exc)
                continue
            if response.status_code == 200 and is_listing_url(response.url or url):
                logger.info("Found direct listing URL: %s", url)
                found.append(self.candidate(restaurant_name, url))

        if urls and failures == len(urls):
            raise AdapterTransportError(f"All {failures} direct URL probes failed")
        return found
