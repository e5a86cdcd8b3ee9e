"""Small queries over an extracted menu used when picking items to feature."""

from typing import List

from menu_worker.models import MenuItem, RestaurantMenu


def popular_items(menu: RestaurantMenu) -> List[MenuItem]:
    return [item for item in menu.items if item.is_popular]


def most_expensive_items(menu: RestaurantMenu, limit: int = 5) -> List[MenuItem]:
    """Highest priced items first; ties keep menu order."""
    if limit <= 0:
        return []
    return sorted(menu.items, key=lambda item: item.price, reverse=True)[:limit]


def items_without_images(menu: RestaurantMenu) -> List[MenuItem]:
    return [item for item in menu.items if not item.image_url]
