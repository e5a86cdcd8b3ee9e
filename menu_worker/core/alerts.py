"""Observability sink that mirrors search/scrape attempts to an alerting channel.

A sink is built once per process with :func:`build_sink` and passed explicitly
to the pipeline components. ``record()`` never blocks on the network and never
raises: delivery happens on a background worker and any failure is logged
locally only.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timezone
from typing import Any, Dict, List, Optional, Protocol

import requests

from menu_worker.core.config import Settings, get_settings
from menu_worker.models import ScrapeAttempt

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10
FOOTER_TEXT = "Menu Resolver"
COLORS = {
    "info": 0x3498DB,
    "warn": 0xF39C12,
    "error": 0xE74C3C,
    "success": 0x2ECC71,
}


class AlertSink(Protocol):
    def record(self, attempt: ScrapeAttempt) -> None:
        ...


class LoggingSink:
    """Keeps an append-only history and writes each attempt to the local log."""

    def __init__(self) -> None:
        self._history: List[ScrapeAttempt] = []
        self._lock = threading.Lock()

    @property
    def history(self) -> List[ScrapeAttempt]:
        with self._lock:
            return list(self._history)

    def record(self, attempt: ScrapeAttempt) -> None:
        with self._lock:
            self._history.append(attempt)
        level = logging.INFO if attempt.success else logging.WARNING
        logger.log(
            level,
            "[%s] %s via %s: %d result(s) in %dms success=%s%s",
            attempt.kind,
            attempt.target,
            attempt.method,
            attempt.item_count,
            attempt.duration_ms,
            attempt.success,
            f" error={attempt.error_summary}" if attempt.error_summary else "",
            extra={"event": attempt.to_event()},
        )

    def close(self) -> None:
        return None


def _level_for(attempt: ScrapeAttempt) -> str:
    if attempt.kind == "error":
        return "error"
    return "success" if attempt.success else "warn"


def _title_for(attempt: ScrapeAttempt) -> str:
    if attempt.kind == "search":
        return "Search Successful" if attempt.success else "Search Returned Nothing"
    if attempt.kind == "scrape":
        return "Scraping Successful" if attempt.success else "Scraping Found No Items"
    return "Pipeline Failure"


def build_embed(attempt: ScrapeAttempt) -> Dict[str, Any]:
    """Discord embed payload describing one attempt."""

    level = _level_for(attempt)
    fields = [
        {"name": "Subject", "value": attempt.target[:1024] or "-", "inline": False},
        {"name": "Method", "value": attempt.method or "-", "inline": True},
        {"name": "Results", "value": str(attempt.item_count), "inline": True},
        {"name": "Duration", "value": f"{attempt.duration_ms}ms", "inline": True},
    ]
    if attempt.error_summary:
        fields.append({"name": "Error", "value": attempt.error_summary[:1024], "inline": False})

    return {
        "title": _title_for(attempt),
        "description": f"{attempt.kind} attempt for {attempt.target}"[:4096],
        "color": COLORS[level],
        "fields": fields,
        "timestamp": attempt.recorded_at.astimezone(timezone.utc).isoformat(),
        "footer": {"text": FOOTER_TEXT},
    }


class DiscordWebhookSink(LoggingSink):
    """Posts attempts to a Discord-compatible webhook from a background worker."""

    def __init__(
        self,
        webhook_url: str,
        *,
        session: Optional[requests.Session] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        super().__init__()
        if not webhook_url:
            raise ValueError("A webhook URL is required for DiscordWebhookSink")
        self.webhook_url = webhook_url
        self.session = session or requests.Session()
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="alerts")

    def record(self, attempt: ScrapeAttempt) -> None:
        super().record(attempt)
        try:
            self._executor.submit(self._deliver, attempt)
        except RuntimeError as exc:
            logger.warning("Alert sink is shut down; dropping %s event: %s", attempt.kind, exc)

    def _deliver(self, attempt: ScrapeAttempt) -> bool:
        payload = {"embeds": [build_embed(attempt)], "event": attempt.to_event()}
        try:
            response = self.session.post(self.webhook_url, json=payload, timeout=REQUEST_TIMEOUT)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to send alert for %s: %s", attempt.target, exc)
            return False

        if not (200 <= response.status_code < 300):
            logger.error(
                "Alert webhook returned non-2xx status (%s): %s",
                response.status_code,
                response.text[:500],
            )
            return False
        return True

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self.session.close()


def build_sink(settings: Optional[Settings] = None) -> LoggingSink:
    """Create the process-wide sink: webhook-backed when configured, log-only otherwise."""

    settings = settings or get_settings()
    if settings.alert_webhook_url:
        return DiscordWebhookSink(settings.alert_webhook_url)
    logger.info("ALERT_WEBHOOK_URL missing; alerts will only be logged locally")
    return LoggingSink()
