"""CLI job: resolve a restaurant name to its marketplace menu and print it as JSON."""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from menu_worker.core.alerts import build_sink
from menu_worker.core.config import ConfigError, get_settings
from menu_worker.core.extractor import ExtractionTransportError
from menu_worker.core.fallback import build_fallback_menu
from menu_worker.etl.selection import items_without_images, most_expensive_items, popular_items
from menu_worker.etl.transform import menu_to_dict
from menu_worker.menu_pipeline import persist_menu, resolve_and_extract
from menu_worker.models import CATEGORIES, RestaurantMenu

logger = logging.getLogger(__name__)


def run_resolve_job(
    *,
    restaurant_name: str,
    max_candidates: Optional[int],
    max_items: Optional[int],
    categories: Optional[List[str]],
    fallback: bool,
    save: bool,
) -> Dict[str, Any]:
    settings = get_settings()
    sink = build_sink(settings)
    provenance = "scraped"
    try:
        menu = resolve_and_extract(
            restaurant_name,
            max_candidates=max_candidates,
            max_items=max_items,
            categories=categories,
            settings=settings,
            sink=sink,
        )
        if menu.is_empty and fallback:
            logger.warning("Extraction empty for %r; substituting the sample menu", restaurant_name)
            menu = build_fallback_menu(menu.source_url, restaurant_name).filtered(
                categories=categories, max_items=max_items
            )
            provenance = "synthetic"
    finally:
        sink.close()

    saved = persist_menu(menu, provenance=provenance) if save else False
    return _report(menu, provenance=provenance, saved=saved)


def _report(menu: RestaurantMenu, *, provenance: str, saved: bool) -> Dict[str, Any]:
    payload = menu_to_dict(menu)
    payload["provenance"] = provenance
    payload["saved"] = saved
    payload["analysis"] = {
        "popular": [item.name for item in popular_items(menu)],
        "most_expensive": [item.name for item in most_expensive_items(menu)],
        "without_images": [item.name for item in items_without_images(menu)],
    }
    return payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resolve a restaurant to its delivery listing and extract the menu")
    parser.add_argument("restaurant_name", help="Free-text restaurant name, e.g. 'Bao House'")
    parser.add_argument("--max-candidates", dest="max_candidates", type=int, help="Listing candidates to try")
    parser.add_argument("--max-items", dest="max_items", type=int, help="Truncate the menu to this many items")
    parser.add_argument(
        "--category",
        dest="categories",
        action="append",
        choices=CATEGORIES,
        help="Keep only items in this category (repeatable)",
    )
    parser.add_argument("--fallback", action="store_true", help="Use the sample menu when nothing is extracted")
    parser.add_argument("--save", action="store_true", help="Persist the menu to DATABASE_URL")
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    try:
        payload = run_resolve_job(
            restaurant_name=args.restaurant_name,
            max_candidates=args.max_candidates,
            max_items=args.max_items,
            categories=args.categories,
            fallback=args.fallback,
            save=args.save,
        )
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except ExtractionTransportError as exc:
        logger.error("Menu extraction failed: %s", exc)
        return 1

    json.dump(payload, sys.stdout, ensure_ascii=False, indent=args.indent)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
