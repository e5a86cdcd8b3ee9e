"""Shared contract and helpers for listing search adapters."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Set
from urllib.parse import parse_qs, unquote, urljoin, urlparse

from menu_worker.core.config import Settings
from menu_worker.core.url_validator import (
    is_listing_url,
    location_hint_from_url,
    normalize_listing_url,
)
from menu_worker.models import SearchCandidate

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}

_TITLE_NOISE = re.compile(
    r"^(?:order\s+)?(?P<name>.+?)(?:\s+(?:menu|delivery)\b.*|\s*\|.*|\s+[\-–]\s+.*)?$",
    re.IGNORECASE,
)


class AdapterUnavailable(RuntimeError):
    """Raised when an adapter lacks the configuration or credential it needs."""


class AdapterTransportError(RuntimeError):
    """Raised when an adapter cannot reach, or gets an error from, its backend."""


class SearchAdapter:
    """Uniform wrapper around one external listing-resolution strategy."""

    name = "base"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def is_configured(self) -> bool:
        return True

    def search(self, restaurant_name: str) -> List[SearchCandidate]:
        raise NotImplementedError

    def build_query(self, restaurant_name: str) -> str:
        suffix = self.settings.marketplace_query_suffix
        return f"{restaurant_name.strip()} {suffix}".strip()

    def candidate(
        self,
        restaurant_name: str,
        url: str,
        *,
        title: Optional[str] = None,
        rating: Optional[float] = None,
        eta: Optional[str] = None,
    ) -> SearchCandidate:
        return SearchCandidate(
            display_name=clean_result_title(title) or restaurant_name.strip(),
            listing_url=url,
            location_hint=location_hint_from_url(url),
            rating_hint=rating,
            eta_hint=eta,
            source=self.name,
        )


def clean_result_title(title: Optional[str]) -> Optional[str]:
    """'Order Bao House Menu Delivery Online | Toronto | Uber Eats' -> 'Bao House'."""

    if not title:
        return None
    text = re.sub(r"\s+", " ", title).strip()
    match = _TITLE_NOISE.match(text)
    name = (match.group("name") if match else text).strip(" |-–")
    return name or None


def unwrap_redirect(href: str, base_url: str = "") -> str:
    """Resolve relative links and unwrap DuckDuckGo `/l/?uddg=` redirects."""

    absolute = urljoin(base_url, href) if base_url else href
    if absolute.startswith("//"):
        absolute = f"https:{absolute}"
    parsed = urlparse(absolute)
    if parsed.path.startswith("/l/") or "duckduckgo.com" in parsed.netloc:
        target = parse_qs(parsed.query).get("uddg")
        if target:
            return unquote(target[0])
    return absolute


def filter_listing_urls(urls: Iterable[str], host: str, *, limit: Optional[int] = None) -> List[str]:
    """Keep unique listing URLs on `host`, in first-seen order."""

    seen: Set[str] = set()
    kept: List[str] = []
    for raw in urls:
        if not raw:
            continue
        url = unwrap_redirect(raw.strip())
        if not is_listing_url(url, host=host):
            continue
        key = normalize_listing_url(url)
        if key in seen:
            continue
        seen.add(key)
        kept.append(url)
        if limit is not None and len(kept) >= limit:
            break
    return kept


def extract_listing_urls_from_text(text: str, host: str) -> List[str]:
    """Regex harvest of listing URLs from raw HTML or JSON text."""

    pattern = re.compile(
        rf"https?://(?:www\.)?{re.escape(host.removeprefix('www.'))}/[^\s\"'<>]+",
        re.IGNORECASE,
    )
    return filter_listing_urls((unquote(match) for match in pattern.findall(text or "")), host)
