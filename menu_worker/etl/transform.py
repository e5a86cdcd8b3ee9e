"""Utilities for turning extracted menus into database rows and JSON payloads."""

import logging
from typing import Any, Dict, List

from menu_worker.models import MenuItem, RestaurantMenu

logger = logging.getLogger(__name__)

PROVENANCES = {"scraped", "synthetic"}


def item_to_dict(item: MenuItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": item.price,
        "category": item.category,
        "image_url": item.image_url,
        "is_popular": item.is_popular,
    }


def menu_to_dict(menu: RestaurantMenu) -> Dict[str, Any]:
    """JSON-friendly view of a menu; `categories` follows first appearance."""
    return {
        "restaurant_name": menu.restaurant_name,
        "source_url": menu.source_url,
        "scraped_at": menu.scraped_at.isoformat(),
        "categories": menu.category_list,
        "items": [item_to_dict(item) for item in menu.items],
    }


def to_restaurant_row(menu: RestaurantMenu, provenance: str = "scraped") -> Dict[str, Any]:
    if provenance not in PROVENANCES:
        raise ValueError(f"Unknown provenance {provenance!r}")
    return {
        "name": menu.restaurant_name,
        "uber_eats_url": menu.source_url or None,
        "scraped_at": menu.scraped_at,
        "menu_items_count": len(menu.items),
        "data_source": provenance,
        "raw": menu_to_dict(menu),
    }


def to_menu_item_rows(menu: RestaurantMenu) -> List[Dict[str, Any]]:
    rows = []
    for item in menu.items:
        rows.append(
            {
                "name": item.name,
                "description": item.description or None,
                "price": round(item.price, 2),
                "category": item.category,
                "has_image": bool(item.image_url),
            }
        )
    return rows
