"""Deterministic sample menu used when extraction comes back empty."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from menu_worker.core.url_validator import restaurant_name_from_url
from menu_worker.etl.classifier import classify_item
from menu_worker.models import MenuItem, RestaurantMenu

logger = logging.getLogger(__name__)

FALLBACK_SCRAPED_AT = datetime(1970, 1, 1, tzinfo=timezone.utc)
SAMPLE_IMAGE_BASE = "https://example.com/images"

# (name, description, price, image slug)
SAMPLE_ITEMS: Tuple[Tuple[str, str, float, str], ...] = (
    ("Margherita Pizza", "Sample item: fresh mozzarella, tomato sauce, basil", 18.99, "margherita-pizza"),
    ("Pepperoni Pizza", "Sample item: classic pepperoni with mozzarella", 20.99, "pepperoni-pizza"),
    ("Caesar Salad", "Sample item: romaine lettuce, parmesan, croutons", 12.99, "caesar-salad"),
    ("Garlic Bread", "Sample item: toasted bread with garlic butter", 6.99, "garlic-bread"),
    ("Chocolate Lava Cake", "Sample item: warm chocolate cake with molten center", 8.99, "chocolate-lava-cake"),
)


def build_fallback_menu(listing_url: str, restaurant_name: Optional[str] = None) -> RestaurantMenu:
    """Return a clearly synthetic menu for `listing_url`.

    No network access happens here, so this works for unreachable URLs. The
    same inputs always produce an identical menu (including ``scraped_at``).
    Callers that persist the result must tag it ``provenance="synthetic"``.
    """

    name = (restaurant_name or "").strip() or restaurant_name_from_url(listing_url or "") or "Unknown Restaurant"
    logger.warning("Using sample menu for %s (%s)", name, listing_url or "no listing")

    items = tuple(
        MenuItem(
            id=f"item-{index}",
            name=item_name,
            description=description,
            price=price,
            category=classify_item(item_name, description),
            image_url=f"{SAMPLE_IMAGE_BASE}/{slug}.jpg",
            is_popular=index == 1,
        )
        for index, (item_name, description, price, slug) in enumerate(SAMPLE_ITEMS, start=1)
    )
    return RestaurantMenu(
        restaurant_name=name,
        source_url=listing_url or "",
        items=items,
        scraped_at=FALLBACK_SCRAPED_AT,
    )
