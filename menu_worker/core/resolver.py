"""Resolution pipeline: restaurant name -> validated marketplace listing URLs."""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Sequence, Set

from menu_worker.core.alerts import AlertSink
from menu_worker.core.url_validator import is_listing_url, normalize_listing_url
from menu_worker.models import ResolutionResult, ScrapeAttempt, SearchCandidate
from menu_worker.vendors.base import AdapterUnavailable, SearchAdapter

logger = logging.getLogger(__name__)

DEFAULT_MAX_CANDIDATES = 3


class ResolutionPipeline:
    """Tries adapters one at a time, in priority order, until one yields a valid listing.

    Later adapters are never invoked once an earlier one succeeds, which keeps
    paid providers from being called needlessly.
    """

    def __init__(
        self,
        adapters: Sequence[SearchAdapter],
        sink: AlertSink,
        *,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        host: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.adapters = list(adapters)
        self.sink = sink
        self.max_candidates = max(1, max_candidates)
        self.host = host
        self._clock = clock

    def resolve(self, restaurant_name: str) -> ResolutionResult:
        name = (restaurant_name or "").strip()
        if not name:
            logger.warning("Empty restaurant name; nothing to resolve")
            return ResolutionResult()

        started = self._clock()
        for adapter in self.adapters:
            attempt_started = self._clock()
            error: Optional[str] = None
            kind = "search"
            raw: List[SearchCandidate] = []
            try:
                logger.info("Trying %s search for %r", adapter.name, name)
                raw = adapter.search(name) or []
            except AdapterUnavailable as exc:
                error = f"unconfigured: {exc}"
                logger.info("Skipping %s adapter: %s", adapter.name, exc)
            except Exception as exc:  # noqa: BLE001
                kind = "error"
                error = f"{type(exc).__name__}: {exc}"
                logger.warning("%s search failed for %r: %s", adapter.name, name, exc)

            candidates = self.validate(raw)
            self.sink.record(
                ScrapeAttempt(
                    kind=kind,
                    target=name,
                    method=adapter.name,
                    duration_ms=self._elapsed_ms(attempt_started),
                    item_count=len(candidates),
                    success=bool(candidates),
                    error_summary=error,
                )
            )

            if candidates:
                logger.info("%s resolved %r to %d candidate(s)", adapter.name, name, len(candidates))
                return ResolutionResult(
                    candidates=tuple(candidates),
                    adapter=adapter.name,
                    elapsed_ms=self._elapsed_ms(started),
                )
            if error is None:
                logger.info("%s returned no valid listings for %r", adapter.name, name)

        logger.warning("All search adapters failed to resolve %r", name)
        return ResolutionResult(elapsed_ms=self._elapsed_ms(started))

    def validate(self, candidates: Sequence[SearchCandidate]) -> List[SearchCandidate]:
        """Keep valid, path-unique listing candidates up to the cap."""
        kept: List[SearchCandidate] = []
        seen: Set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, SearchCandidate):
                continue
            if not is_listing_url(candidate.listing_url, host=self.host):
                logger.debug("Rejected non-listing URL %s", candidate.listing_url)
                continue
            key = normalize_listing_url(candidate.listing_url)
            if key in seen:
                continue
            seen.add(key)
            kept.append(candidate)
            if len(kept) >= self.max_candidates:
                break
        return kept

    def _elapsed_ms(self, since: float) -> int:
        return max(0, int((self._clock() - since) * 1000))
