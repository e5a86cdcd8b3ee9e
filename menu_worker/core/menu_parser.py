"""HTML parsing helpers that turn a rendered listing page into menu items.

The extraction cascade is expressed as data: ordered tuples of
:class:`MatcherStrategy` evaluated by :func:`run_strategies`. Each table can be
tuned independently of the code that walks it, and every function in here is
pure (HTML in, values out) so it can be exercised without a browser.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag
from soupsieve import SelectorSyntaxError

from menu_worker.core.url_validator import restaurant_name_from_url
from menu_worker.etl.classifier import classify_item
from menu_worker.models import MenuItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatcherStrategy:
    """A named CSS selector tried as one step of a first-match cascade."""

    name: str
    selector: str


# Containers that usually wrap the orderable menu. First hint with a match wins.
SECTION_STRATEGIES: Tuple[MatcherStrategy, ...] = (
    MatcherStrategy("testid-menu", "[data-testid*='menu' i]:not([data-testid*='item' i])"),
    MatcherStrategy("testid-catalog", "[data-testid*='catalog' i]"),
    MatcherStrategy("testid-store-items", "[data-testid*='store-items' i]"),
    MatcherStrategy("id-menu", "[id*='menu' i]:not([id*='item' i])"),
    MatcherStrategy("section-menu", "section[class*='menu' i]"),
    MatcherStrategy("class-menu", "[class*='menu-list' i], [class*='menu-section' i]"),
    MatcherStrategy("main", "main"),
)

# Individual item cards inside the chosen scope.
ITEM_STRATEGIES: Tuple[MatcherStrategy, ...] = (
    MatcherStrategy("testid-store-item", "[data-testid*='store-item' i]"),
    MatcherStrategy("testid-menu-item", "[data-testid*='menu-item' i]"),
    MatcherStrategy("testid-dish", "[data-testid*='dish' i]"),
    MatcherStrategy("testid-product", "[data-testid*='product' i]"),
    MatcherStrategy("class-menu-item", "[class*='menu-item' i], [class*='menuitem' i]"),
    MatcherStrategy("class-dish", "[class*='dish' i]"),
    MatcherStrategy("class-product", "[class*='product' i]"),
    MatcherStrategy("class-food-item", "[class*='food-item' i]"),
    MatcherStrategy("list-item", "li"),
    MatcherStrategy("article", "article"),
    MatcherStrategy("role-button", "div[role='button']"),
)

# Selectors waited on while the listing hydrates.
DYNAMIC_CONTENT_SELECTORS: Tuple[str, ...] = (
    "[data-testid*='store-item']",
    "[data-testid*='menu-item']",
    "[data-testid*='menu']",
    "li[data-test*='item']",
    "main h3",
)

NAME_SELECTOR = (
    "h1, h2, h3, h4, h5, h6, [role='heading'], [data-testid*='name' i], "
    "[data-testid*='title' i], [class*='name' i], [class*='title' i]"
)
DESCRIPTION_SELECTOR = (
    "p, [data-testid*='description' i], [class*='description' i], [class*='desc' i]"
)
PRICE_SELECTOR = (
    "[data-testid*='price' i], [class*='price' i], [class*='cost' i], [class*='amount' i]"
)

DENYLIST_REGEX = re.compile(r"\b(?:frequently asked|faqs?|reviews?|ratings?)\b", re.IGNORECASE)
POPULAR_PHRASES = ("popular", "most liked", "#1")
BLOCK_PAGE_MARKERS = ("captcha", "access denied", "are you a robot", "unusual traffic")

CURRENCY = r"(?:CA\$|US\$|C\$|A\$|[$€£¥₹])"
NUMBER = r"(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:[.,]\d{1,2})?)"
PRICE_TOKEN_REGEX = re.compile(rf"{CURRENCY}?\s?{NUMBER}")
MARKED_PRICE_REGEX = re.compile(rf"{CURRENCY}\s?{NUMBER}|{NUMBER}\s?{CURRENCY}")
BARE_PRICE_REGEX = re.compile(rf"^\s*(?:{CURRENCY}\s?{NUMBER}|{NUMBER}\s?{CURRENCY})\s*$")

MAX_NAME_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000
PRICE_ANCHOR_MAX_DEPTH = 5
CARD_TAGS = {"li", "article", "div", "section", "a", "button"}


@dataclass(frozen=True)
class RawItem:
    name: str
    description: str
    price: float
    image_url: Optional[str]
    is_popular: bool


def _to_price(number: str) -> float:
    if "," in number and "." in number:
        number = number.replace(",", "")
    elif "," in number:
        head, _, tail = number.rpartition(",")
        number = f"{head.replace(',', '')}.{tail}" if len(tail) <= 2 else number.replace(",", "")
    try:
        value = float(number)
    except ValueError:
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return round(value, 2)


def parse_price(text: Optional[str]) -> float:
    """First numeric token in `text` as a price; 0.0 when there is none."""

    if not text:
        return 0.0
    match = MARKED_PRICE_REGEX.search(text) or PRICE_TOKEN_REGEX.search(text)
    if not match:
        return 0.0
    number = next((group for group in match.groups() if group), None)
    return _to_price(number) if number else 0.0


def run_strategies(
    scope: Tag, strategies: Sequence[MatcherStrategy]
) -> Tuple[Optional[MatcherStrategy], List[Tag]]:
    """Return the first strategy yielding at least one node, plus its nodes."""

    for strategy in strategies:
        try:
            nodes = scope.select(strategy.selector)
        except SelectorSyntaxError as exc:
            logger.debug("Selector %s failed: %s", strategy.selector, exc)
            continue
        if nodes:
            return strategy, nodes
    return None, []


def outermost(nodes: Iterable[Tag]) -> List[Tag]:
    """Drop nodes nested inside another node of the same set, keeping document order."""

    node_list = list(nodes)
    members = {id(node) for node in node_list}
    result: List[Tag] = []
    for node in node_list:
        if any(id(parent) in members for parent in node.parents):
            continue
        result.append(node)
    return result


def innermost(nodes: Iterable[Tag]) -> List[Tag]:
    """Drop nodes that contain another node of the same set, keeping document order."""

    node_list = list(nodes)
    containers: Set[int] = set()
    members = {id(node) for node in node_list}
    for node in node_list:
        for parent in node.parents:
            if id(parent) in members:
                containers.add(id(parent))
    return [node for node in node_list if id(node) not in containers]


def locate_menu_section(soup: BeautifulSoup) -> Tuple[Optional[MatcherStrategy], Optional[Tag]]:
    strategy, nodes = run_strategies(soup, SECTION_STRATEGIES)
    if not nodes:
        return None, None
    return strategy, outermost(nodes)[0]


def _node_text(node: Tag) -> str:
    return node.get_text(" ", strip=True)


def _clean(text: str, limit: int) -> str:
    return re.sub(r"\s+", " ", text or "").strip()[:limit]


def is_denylisted(node: Tag) -> bool:
    return DENYLIST_REGEX.search(_node_text(node)) is not None


def _first_line_name(node: Tag) -> str:
    for line in node.get_text("\n").splitlines():
        stripped = line.strip()
        if stripped and not BARE_PRICE_REGEX.match(stripped):
            return stripped
    return ""


def _image_url(node: Tag, base_url: str) -> Optional[str]:
    image = node.find("img")
    if not isinstance(image, Tag):
        return None
    source = image.get("src") or image.get("data-src")
    if not source and image.get("srcset"):
        source = image["srcset"].split(",")[0].strip().split(" ")[0]
    if not source or source.startswith("data:"):
        return None
    return urljoin(base_url, source) if base_url else source


def parse_item_node(node: Tag, base_url: str = "") -> Optional[RawItem]:
    """Extract one item from a card node; None means the node is not a usable item."""

    if is_denylisted(node):
        return None

    name_node = node.select_one(NAME_SELECTOR)
    name = _clean(_node_text(name_node), MAX_NAME_LENGTH) if name_node else ""
    if name and BARE_PRICE_REGEX.match(name):
        name = ""
    if not name:
        name = _clean(_first_line_name(node), MAX_NAME_LENGTH)
    if not name:
        return None

    description = ""
    for candidate in node.select(DESCRIPTION_SELECTOR):
        if candidate is name_node:
            continue
        text = _clean(_node_text(candidate), MAX_DESCRIPTION_LENGTH)
        if text and text != name and not BARE_PRICE_REGEX.match(text):
            description = text
            break

    price_node = node.select_one(PRICE_SELECTOR)
    price = parse_price(_node_text(price_node)) if price_node else 0.0
    if not price:
        marked = MARKED_PRICE_REGEX.search(_node_text(node))
        if marked:
            price = parse_price(marked.group(0))

    text = _node_text(node).lower()
    return RawItem(
        name=name,
        description=description,
        price=price,
        image_url=_image_url(node, base_url),
        is_popular=any(phrase in text for phrase in POPULAR_PHRASES),
    )


def _has_name_candidate(node: Tag) -> bool:
    return node.select_one(NAME_SELECTOR) is not None


def find_price_anchored_nodes(soup: BeautifulSoup) -> List[Tag]:
    """Walk up from every currency-marked text node to the nearest card with a name."""

    cards: List[Tag] = []
    seen: Set[int] = set()
    for text_node in soup.find_all(string=MARKED_PRICE_REGEX):
        if not isinstance(text_node, NavigableString):
            continue
        parent = text_node.parent
        if parent is None or parent.name in {"script", "style", "noscript", "title"}:
            continue
        current: Optional[Tag] = parent
        depth = 0
        while current is not None and depth < PRICE_ANCHOR_MAX_DEPTH:
            if current.name in {"body", "html", "main"}:
                break
            if current.name in CARD_TAGS and _has_name_candidate(current):
                if id(current) not in seen:
                    seen.add(id(current))
                    cards.append(current)
                break
            current = current.parent
            depth += 1
    return innermost(cards)


def _sectioned_nodes(soup: BeautifulSoup) -> Tuple[str, List[Tag]]:
    section_strategy, section = locate_menu_section(soup)
    scope: Tag = section if section is not None else (soup.body or soup)
    item_strategy, nodes = run_strategies(scope, ITEM_STRATEGIES)
    if item_strategy is None:
        return "sectioned", []
    label = f"sectioned:{section_strategy.name if section_strategy else 'page'}/{item_strategy.name}"
    return label, outermost(nodes)


def _price_anchored_nodes(soup: BeautifulSoup) -> Tuple[str, List[Tag]]:
    return "page-wide", find_price_anchored_nodes(soup)


# Ordered extraction passes over one HTML snapshot.
EXTRACTION_PASSES: Tuple[Callable[[BeautifulSoup], Tuple[str, List[Tag]]], ...] = (
    _sectioned_nodes,
    _price_anchored_nodes,
)


def build_items(raw_items: Iterable[RawItem]) -> List[MenuItem]:
    """Classify, de-duplicate and number raw items in document order."""

    items: List[MenuItem] = []
    seen: Set[Tuple[str, float]] = set()
    for raw in raw_items:
        key = (raw.name.lower(), raw.price)
        if key in seen:
            continue
        seen.add(key)
        items.append(
            MenuItem(
                id=f"item-{len(items) + 1}",
                name=raw.name,
                description=raw.description,
                price=raw.price,
                category=classify_item(raw.name, raw.description),
                image_url=raw.image_url,
                is_popular=raw.is_popular,
            )
        )
    return items


def extract_items(html: str, base_url: str = "") -> Tuple[List[MenuItem], Optional[str]]:
    """Run the extraction passes in order; returns the items and the pass that produced them."""

    soup = BeautifulSoup(html or "", "html.parser")
    for extraction_pass in EXTRACTION_PASSES:
        method, nodes = extraction_pass(soup)
        raw_items = []
        for node in nodes:
            parsed = parse_item_node(node, base_url)
            if parsed is None:
                logger.debug("Dropped node without a usable name (%s)", method)
                continue
            raw_items.append(parsed)
        items = build_items(raw_items)
        if items:
            logger.info("Extracted %d items via %s", len(items), method)
            return items, method
    return [], None


def extract_restaurant_name(html: str, listing_url: str) -> str:
    soup = BeautifulSoup(html or "", "html.parser")
    heading = soup.find("h1")
    if isinstance(heading, Tag):
        name = _clean(_node_text(heading), MAX_NAME_LENGTH)
        if name:
            return name
    return restaurant_name_from_url(listing_url) or "Unknown Restaurant"


def looks_blocked(html: str, title: str = "") -> bool:
    """Heuristic check for CAPTCHA or bot-wall pages."""

    haystack = f"{title} {BeautifulSoup(html or '', 'html.parser').get_text(' ', strip=True)[:2000]}".lower()
    return any(marker in haystack for marker in BLOCK_PAGE_MARKERS)
