"""Build search adapters in the configured priority order."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

import requests

from menu_worker.core.config import Settings, get_settings
from menu_worker.vendors.base import SearchAdapter
from menu_worker.vendors.direct_url import DirectUrlAdapter
from menu_worker.vendors.duckduckgo_html import DuckDuckGoHtmlAdapter
from menu_worker.vendors.playwright_search import PlaywrightSearchAdapter
from menu_worker.vendors.serpapi_search import SerpApiAdapter

logger = logging.getLogger(__name__)

ADAPTER_FACTORIES: Dict[str, Callable[[Settings, requests.Session], SearchAdapter]] = {
    "serpapi": lambda settings, session: SerpApiAdapter(settings),
    "playwright": lambda settings, session: PlaywrightSearchAdapter(settings),
    "duckduckgo": lambda settings, session: DuckDuckGoHtmlAdapter(settings, session=session),
    "direct_url": lambda settings, session: DirectUrlAdapter(settings, session=session),
}


def build_adapters(
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None,
) -> List[SearchAdapter]:
    """Instantiate adapters named in `settings.adapter_order`; unknown names are skipped."""

    settings = settings or get_settings()
    session = session or requests.Session()
    adapters: List[SearchAdapter] = []
    for name in settings.adapter_order:
        factory = ADAPTER_FACTORIES.get(name)
        if factory is None:
            logger.warning("Unknown search adapter %r in ADAPTER_ORDER; skipping", name)
            continue
        adapters.append(factory(settings, session))
    return adapters
