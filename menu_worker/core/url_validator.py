"""Canonical listing URL checks for the delivery marketplace."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import parse_qsl, urlparse, urlunparse

# /ca/store/<slug>[/<store-id>] with an optional region prefix.
LISTING_PATH_REGEX = re.compile(
    r"^(?:/[a-z]{2}(?:-[a-z]{2})?)?/store/[A-Za-z0-9%._~-]+(?:/[A-Za-z0-9%._~-]+)?/?$"
)
# Query parameters that mean the URL points at a modal, a search page or a
# listing sub-view rather than the listing itself.
NON_LISTING_QUERY_MARKERS = frozenset({"mod", "modctx", "q", "search", "pl"})


def is_listing_url(url: str, host: Optional[str] = None) -> bool:
    """Return True when `url` has the marketplace listing-path shape."""

    if not url or not isinstance(url, str):
        return False

    parsed = urlparse(url.strip())
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return False

    if host and _bare_host(parsed.netloc) != _bare_host(host):
        return False

    if not LISTING_PATH_REGEX.match(parsed.path):
        return False

    query_keys = {key.lower() for key, _ in parse_qsl(parsed.query, keep_blank_values=True)}
    return not (query_keys & NON_LISTING_QUERY_MARKERS)


def normalize_listing_url(url: str) -> str:
    """Path-normalised form used to de-duplicate candidates."""

    parsed = urlparse(url.strip())
    path = parsed.path.rstrip("/") or "/"
    return urlunparse(("https", parsed.netloc.lower(), path, "", "", ""))


def location_hint_from_url(url: str) -> Optional[str]:
    """Guess a neighbourhood from the slug, e.g. `.../store/pizza-nova-toronto` -> `Toronto`."""

    segments = [segment for segment in urlparse(url).path.split("/") if segment]
    try:
        slug = segments[segments.index("store") + 1]
    except (ValueError, IndexError):
        return None
    if "-" not in slug:
        return None
    location = slug.rsplit("-", 1)[-1]
    if not location or location.isdigit():
        return None
    return location.capitalize()


def restaurant_name_from_url(url: str) -> Optional[str]:
    """Human readable name from the listing slug (`bao-house-north-york` -> `Bao House North York`)."""

    segments = [segment for segment in urlparse(url).path.split("/") if segment]
    try:
        slug = segments[segments.index("store") + 1]
    except (ValueError, IndexError):
        return None
    words = [word for word in re.split(r"[-_]+", slug) if word]
    if not words:
        return None
    return " ".join(word.capitalize() for word in words)


def _bare_host(netloc: str) -> str:
    host = netloc.lower().split("@")[-1].split(":")[0]
    return host[4:] if host.startswith("www.") else host
