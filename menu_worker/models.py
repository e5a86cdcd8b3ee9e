"""Core data models shared by the menu resolution pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

CATEGORIES = ("appetizer", "main", "dessert", "drink", "side", "other")

EVENT_KINDS = ("search", "scrape", "error")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class SearchCandidate:
    """A provisionally resolved listing URL returned by one search adapter."""

    display_name: str
    listing_url: str
    location_hint: Optional[str] = None
    rating_hint: Optional[float] = None
    eta_hint: Optional[str] = None
    source: str = ""


@dataclass(frozen=True, slots=True)
class ResolutionResult:
    """Ordered candidates tagged with the adapter that produced them."""

    candidates: Tuple[SearchCandidate, ...] = ()
    adapter: Optional[str] = None
    elapsed_ms: int = 0

    def __bool__(self) -> bool:
        return bool(self.candidates)

    def __len__(self) -> int:
        return len(self.candidates)

    @property
    def urls(self) -> List[str]:
        return [candidate.listing_url for candidate in self.candidates]


@dataclass(frozen=True, slots=True)
class MenuItem:
    id: str
    name: str
    description: str = ""
    price: float = 0.0
    category: str = "other"
    image_url: Optional[str] = None
    is_popular: bool = False

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("MenuItem.name must not be empty")
        if not math.isfinite(self.price) or self.price < 0:
            raise ValueError(f"MenuItem.price must be a non-negative number, got {self.price!r}")
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown menu category {self.category!r}")


@dataclass(frozen=True, slots=True)
class RestaurantMenu:
    """A scraped (or synthetic) menu; `categories` is always derived from `items`."""

    restaurant_name: str
    source_url: str
    items: Tuple[MenuItem, ...] = ()
    scraped_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))

    @property
    def categories(self) -> FrozenSet[str]:
        return frozenset(item.category for item in self.items)

    @property
    def category_list(self) -> List[str]:
        """Distinct categories in first-appearance order, for serialisation."""
        ordered: List[str] = []
        for item in self.items:
            if item.category not in ordered:
                ordered.append(item.category)
        return ordered

    @property
    def is_empty(self) -> bool:
        return not self.items

    def filtered(
        self,
        *,
        categories: Optional[Iterable[str]] = None,
        max_items: Optional[int] = None,
    ) -> "RestaurantMenu":
        """Return a copy restricted to `categories`, then truncated to `max_items`."""
        items = list(self.items)
        if categories:
            wanted = {category.strip().lower() for category in categories}
            items = [item for item in items if item.category in wanted]
        if max_items is not None:
            items = items[: max(max_items, 0)]
        return replace(self, items=tuple(items))


@dataclass(frozen=True, slots=True)
class ScrapeAttempt:
    """Append-only observability record for one search or scrape attempt."""

    kind: str
    target: str
    method: str
    duration_ms: int
    item_count: int
    success: bool
    error_summary: Optional[str] = None
    recorded_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.kind not in EVENT_KINDS:
            raise ValueError(f"Unknown attempt kind {self.kind!r}")

    def to_event(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "subject": self.target,
            "method": self.method,
            "duration_ms": self.duration_ms,
            "result_count": self.item_count,
            "success": self.success,
            "error": self.error_summary,
        }
