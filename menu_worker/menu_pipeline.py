"""Composed entry point: restaurant name in, structured menu out."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from menu_worker.core.alerts import AlertSink, build_sink
from menu_worker.core.config import Settings, get_settings
from menu_worker.core.extractor import ExtractionTransportError, MenuExtractor, scrape_with_retry
from menu_worker.core.resolver import ResolutionPipeline
from menu_worker.models import RestaurantMenu
from menu_worker.vendors.base import SearchAdapter
from menu_worker.vendors.registry import build_adapters

logger = logging.getLogger(__name__)


def build_http_session() -> requests.Session:
    """Session shared by the HTTP adapters of one call; retries transient 5xx GETs."""
    session = requests.Session()
    retries = Retry(
        total=2,
        backoff_factor=0.5,
        status_forcelist=(502, 503, 504),
        allowed_methods=("GET",),
    )
    session.mount("http://", HTTPAdapter(max_retries=retries))
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


def resolve_and_extract(
    restaurant_name: str,
    *,
    max_candidates: Optional[int] = None,
    max_items: Optional[int] = None,
    categories: Optional[Iterable[str]] = None,
    settings: Optional[Settings] = None,
    sink: Optional[AlertSink] = None,
    adapters: Optional[Sequence[SearchAdapter]] = None,
    extractor: Optional[MenuExtractor] = None,
) -> RestaurantMenu:
    """Resolve `restaurant_name` to a listing and extract its menu.

    Candidates are tried in order and the first menu with items wins (category
    filter first, then ``max_items`` truncation). Zero items or exhausted
    transport retries on one candidate move on to the next. When every
    candidate failed on transport the last ``ExtractionTransportError`` is
    raised; when nothing resolved an empty menu with ``source_url=""`` comes back.
    The synthetic fallback is never applied here.
    """

    settings = settings or get_settings()
    owns_sink = sink is None
    sink = sink or build_sink(settings)
    session: Optional[requests.Session] = None
    if adapters is None:
        session = build_http_session()
        adapters = build_adapters(settings, session=session)

    try:
        pipeline = ResolutionPipeline(
            adapters,
            sink,
            max_candidates=settings.max_candidates if max_candidates is None else max_candidates,
            host=settings.marketplace_host,
        )
        resolution = pipeline.resolve(restaurant_name)
        if not resolution:
            logger.warning("No listing found for %r", restaurant_name)
            return RestaurantMenu(restaurant_name=restaurant_name, source_url="")

        extractor = extractor or MenuExtractor(sink, settings=settings)
        wanted: Optional[List[str]] = list(categories) if categories else None
        last_error: Optional[ExtractionTransportError] = None
        transport_failures = 0
        first_empty: Optional[RestaurantMenu] = None

        for listing_url in resolution.urls:
            try:
                menu = scrape_with_retry(extractor, listing_url)
            except ExtractionTransportError as exc:
                transport_failures += 1
                last_error = exc
                logger.warning("Giving up on %s: %s", listing_url, exc)
                continue

            if menu.items:
                logger.info(
                    "Extracted %d items for %r from %s",
                    len(menu.items),
                    restaurant_name,
                    listing_url,
                )
                return menu.filtered(categories=wanted, max_items=max_items)
            if first_empty is None:
                first_empty = menu
            logger.info("No items at %s; trying next candidate", listing_url)

        if last_error is not None and transport_failures == len(resolution.candidates):
            raise last_error
        return first_empty or RestaurantMenu(restaurant_name=restaurant_name, source_url="")
    finally:
        if session is not None:
            session.close()
        if owns_sink:
            close = getattr(sink, "close", None)
            if callable(close):
                close()


def persist_menu(menu: RestaurantMenu, provenance: str = "scraped") -> bool:
    """Write `menu` through the persistence boundary; failures are logged, never raised."""

    from menu_worker.core import db

    if not get_settings().database_url:
        logger.warning("DATABASE_URL is not set; skipping persistence for %s", menu.restaurant_name)
        return False
    try:
        db.init_pool()
        restaurant_id = db.save_menu(menu, provenance=provenance)
    except Exception as exc:  # noqa: BLE001
        logger.error("Failed to persist menu for %s: %s", menu.restaurant_name, exc)
        return False
    logger.info("Persisted %s as restaurant id=%s (%s)", menu.restaurant_name, restaurant_id, provenance)
    return True
