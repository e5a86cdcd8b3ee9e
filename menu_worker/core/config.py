"""Configuration helpers for the menu resolution worker.

Environment variables are the only way to provide credentials: `SERPAPI_API_KEY`
is a billable key and must never be hardcoded, and `ALERT_WEBHOOK_URL` lets us
point observability at different alerting channels per deployment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_ADAPTER_ORDER = ("serpapi", "playwright", "duckduckgo", "direct_url")
DEFAULT_DIRECT_URL_SUFFIXES = ("", "-toronto", "-downtown", "-north-york", "-uptown")


class ConfigError(RuntimeError):
    """Raised when a configuration value is present but malformed."""


@dataclass(frozen=True)
class Settings:
    serpapi_api_key: str = ""
    alert_webhook_url: str = ""
    database_url: str = ""
    marketplace_base_url: str = "https://www.ubereats.com"
    marketplace_region: str = "ca"
    marketplace_query_suffix: str = "Uber Eats"
    adapter_order: Tuple[str, ...] = DEFAULT_ADAPTER_ORDER
    max_candidates: int = 3
    navigation_timeout_ms: int = 30000
    selector_timeout_ms: int = 10000
    http_timeout_seconds: float = 10.0
    human_delay_min: float = 1.0
    human_delay_max: float = 3.0
    browser_headless: bool = True
    direct_url_suffixes: Tuple[str, ...] = DEFAULT_DIRECT_URL_SUFFIXES

    @property
    def marketplace_host(self) -> str:
        host = self.marketplace_base_url.split("://", 1)[-1].split("/", 1)[0]
        return host.lower()


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


def _get_list(name: str, default: Tuple[str, ...], *, keep_empty: bool = False) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    parts = [part.strip() for part in raw.split(",")]
    if not keep_empty:
        parts = [part.lower() for part in parts if part]
    return tuple(parts) or default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load, validate and cache worker settings to avoid repeated env lookups."""
    load_dotenv()

    serpapi_api_key = os.getenv("SERPAPI_API_KEY", "").strip()
    alert_webhook_url = os.getenv("ALERT_WEBHOOK_URL", "").strip()
    database_url = os.getenv("DATABASE_URL", "").strip()
    base_url = os.getenv("MARKETPLACE_BASE_URL", "").strip().rstrip("/") or Settings.marketplace_base_url
    region = os.getenv("MARKETPLACE_REGION", "").strip().lower() or Settings.marketplace_region
    query_suffix = os.getenv("MARKETPLACE_QUERY_SUFFIX", Settings.marketplace_query_suffix).strip()
    headless = os.getenv("BROWSER_HEADLESS", "true").lower() in {"1", "true", "yes"}

    delay_min = _get_float("HUMAN_DELAY_MIN", Settings.human_delay_min)
    delay_max = _get_float("HUMAN_DELAY_MAX", Settings.human_delay_max)
    if delay_max < delay_min:
        raise ConfigError("HUMAN_DELAY_MAX must be greater than or equal to HUMAN_DELAY_MIN")

    if not serpapi_api_key:
        logger.warning("SERPAPI_API_KEY is not configured; the SerpAPI adapter will be skipped.")
    if not alert_webhook_url:
        logger.warning("ALERT_WEBHOOK_URL is not configured; alerts will only be logged locally.")
    if not database_url:
        logger.warning("DATABASE_URL is not set; menus will not be persisted.")

    return Settings(
        serpapi_api_key=serpapi_api_key,
        alert_webhook_url=alert_webhook_url,
        database_url=database_url,
        marketplace_base_url=base_url,
        marketplace_region=region,
        marketplace_query_suffix=query_suffix,
        adapter_order=_get_list("ADAPTER_ORDER", DEFAULT_ADAPTER_ORDER),
        max_candidates=_get_int("MAX_CANDIDATES", Settings.max_candidates),
        navigation_timeout_ms=_get_int("NAVIGATION_TIMEOUT_MS", Settings.navigation_timeout_ms),
        selector_timeout_ms=_get_int("SELECTOR_TIMEOUT_MS", Settings.selector_timeout_ms),
        http_timeout_seconds=_get_float("HTTP_TIMEOUT_SECONDS", Settings.http_timeout_seconds),
        human_delay_min=delay_min,
        human_delay_max=delay_max,
        browser_headless=headless,
        direct_url_suffixes=_get_list(
            "DIRECT_URL_SUFFIXES", DEFAULT_DIRECT_URL_SUFFIXES, keep_empty=True
        ),
    )
