"""Database helpers for persisting extracted menus."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

from psycopg2 import extras, pool

from menu_worker.core.config import get_settings
from menu_worker.etl.transform import to_menu_item_rows, to_restaurant_row
from menu_worker.models import RestaurantMenu

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


def _prepare_restaurant_params(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": row.get("name"),
        "uber_eats_url": row.get("uber_eats_url"),
        "scraped_at": row.get("scraped_at"),
        "menu_items_count": row.get("menu_items_count") or 0,
        "data_source": row.get("data_source"),
        "raw": extras.Json(row.get("raw") or {}),
    }


_INSERT_RESTAURANT = """
INSERT INTO restaurants (
    name,
    uber_eats_url,
    scraped_at,
    menu_items_count,
    data_source,
    raw,
    updated_at
) VALUES (
    %(name)s,
    %(uber_eats_url)s,
    %(scraped_at)s,
    %(menu_items_count)s,
    %(data_source)s,
    %(raw)s,
    NOW()
)
RETURNING id;
"""

_INSERT_MENU_ITEM = """
INSERT INTO menu_items (
    restaurant_id,
    name,
    description,
    price,
    category,
    has_image
) VALUES (
    %(restaurant_id)s,
    %(name)s,
    %(description)s,
    %(price)s,
    %(category)s,
    %(has_image)s
);
"""


def save_menu(menu: RestaurantMenu, provenance: str = "scraped") -> Any:
    """Insert the restaurant row and its items in one transaction; returns the restaurant id."""
    if not menu.restaurant_name:
        raise ValueError("restaurant_name is required to persist a menu")

    params = _prepare_restaurant_params(to_restaurant_row(menu, provenance))
    item_rows = to_menu_item_rows(menu)

    with get_connection() as conn:
        try:
            with conn.cursor() as cur:
                cur.execute(_INSERT_RESTAURANT, params)
                restaurant_id = cur.fetchone()[0]
                for row in item_rows:
                    cur.execute(_INSERT_MENU_ITEM, dict(row, restaurant_id=restaurant_id))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
    logger.debug("Saved %s with %d items (%s)", menu.restaurant_name, len(item_rows), provenance)
    return restaurant_id
