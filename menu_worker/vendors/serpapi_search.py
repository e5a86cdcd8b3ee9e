"""SerpAPI Google organic search adapter.

SerpAPI charges per request, so it sits first in the default adapter order and
the resolution pipeline stops as soon as it yields a listing. Failures are not
retried here: moving on to the next adapter is the retry strategy.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from serpapi import GoogleSearch

from menu_worker.core.config import Settings
from menu_worker.models import SearchCandidate
from menu_worker.vendors.base import (
    AdapterTransportError,
    AdapterUnavailable,
    SearchAdapter,
    filter_listing_urls,
)

logger = logging.getLogger(__name__)

RESULTS_PER_QUERY = 10


class SerpApiAdapter(SearchAdapter):
    name = "serpapi"

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        self.api_key = settings.serpapi_api_key

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_params(self, restaurant_name: str) -> Dict[str, Any]:
        """Construct SerpAPI request parameters for the Google engine."""
        if not restaurant_name or not restaurant_name.strip():
            raise ValueError("A restaurant name must be provided for SerpAPI lookups.")
        return {
            "engine": "google",
            "q": self.build_query(restaurant_name),
            "api_key": self.api_key,
            "num": RESULTS_PER_QUERY,
            "gl": self.settings.marketplace_region,
            "hl": "en",
        }

    def fetch(self, restaurant_name: str) -> Dict[str, Any]:
        params = self.build_params(restaurant_name)
        logger.info("Calling SerpAPI for query=%s", params["q"])
        try:
            search = GoogleSearch(params)
            search.timeout = self.settings.http_timeout_seconds
            data = search.get_dict()
        except Exception as exc:  # noqa: BLE001
            raise AdapterTransportError(f"SerpAPI request failed: {exc}") from exc

        if not data:
            raise AdapterTransportError("SerpAPI returned an empty payload.")
        if "error" in data:
            message = data.get("error") or data
            # "Google hasn't returned any results" is an empty result, not a fault.
            if "hasn't returned any results" in str(message):
                return {}
            raise AdapterTransportError(f"SerpAPI returned an error response: {message}")
        return data

    def search(self, restaurant_name: str) -> List[SearchCandidate]:
        if not self.is_configured():
            raise AdapterUnavailable("SERPAPI_API_KEY is not configured")
        data = self.fetch(restaurant_name)
        return self.parse(restaurant_name, data)

    def parse(self, restaurant_name: str, data: Optional[Dict[str, Any]]) -> List[SearchCandidate]:
        """Turn organic results into listing candidates, keeping SerpAPI's ranking order."""
        if not data:
            return []

        results = list(_organic_results(data))
        if not results:
            logger.warning(
                "SerpAPI response missing organic_results. keys=%s",
                list(data.keys())[:10],
            )
            return []

        by_url: Dict[str, Dict[str, Any]] = {}
        for raw in results:
            link = (raw.get("link") or "").strip()
            if link and link not in by_url:
                by_url[link] = raw

        urls = filter_listing_urls(by_url.keys(), self.settings.marketplace_host)
        candidates = []
        for url in urls:
            raw = by_url.get(url, {})
            candidates.append(
                self.candidate(
                    restaurant_name,
                    url,
                    title=raw.get("title"),
                    rating=_rating_from(raw),
                )
            )
        logger.info("SerpAPI produced %d listing candidates", len(candidates))
        return candidates


def _organic_results(data: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    organic = data.get("organic_results")
    if isinstance(organic, list):
        return [item for item in organic if isinstance(item, dict)]
    return []


def _rating_from(raw: Dict[str, Any]) -> Optional[float]:
    snippet = raw.get("rich_snippet") or {}
    for position in ("top", "bottom"):
        extensions = (snippet.get(position) or {}).get("detected_extensions") or {}
        rating = _safe_float(extensions.get("rating"))
        if rating is not None:
            return rating
    return None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None
