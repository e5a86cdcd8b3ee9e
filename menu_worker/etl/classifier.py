"""Keyword based menu item categorisation."""

import re
from typing import FrozenSet, Optional, Tuple

from menu_worker.models import CATEGORIES

DEFAULT_CATEGORY = "other"

# Checked in order; the sets must stay disjoint so a word never votes twice.
CATEGORY_KEYWORDS: Tuple[Tuple[str, FrozenSet[str]], ...] = (
    (
        "drink",
        frozenset({
            "drink", "drinks", "beverage", "beverages", "soda", "pop", "coke", "sprite", "juice",
            "lemonade", "tea", "coffee", "latte", "cappuccino", "espresso", "americano", "mocha",
            "smoothie", "milkshake", "shake", "water", "beer", "wine", "cocktail", "boba",
            "bubble tea", "iced tea", "kombucha", "lassi", "slushie",
        }),
    ),
    (
        "dessert",
        frozenset({
            "dessert", "desserts", "cake", "cheesecake", "brownie", "cookie", "cookies",
            "pie", "pudding", "ice cream", "gelato", "sundae", "tiramisu", "mochi", "donut",
            "doughnut", "churro", "churros", "macaron", "custard", "sorbet", "cupcake",
            "baklava", "flan", "crepe", "lava cake", "condensed milk",
        }),
    ),
    (
        "appetizer",
        frozenset({
            "appetizer", "appetizers", "starter", "starters", "soup", "salad", "wings",
            "dumpling", "dumplings", "spring roll", "spring rolls", "egg roll", "nachos",
            "edamame", "calamari", "bruschetta", "samosa", "samosas", "gyoza", "wonton",
            "wontons", "tapas", "pickled", "skewer", "skewers", "dip", "hummus",
        }),
    ),
    (
        "main",
        frozenset({
            "burger", "burgers", "pizza", "pasta", "spaghetti", "lasagna", "steak", "chicken",
            "beef", "pork", "lamb", "salmon", "fish", "shrimp", "curry", "noodle", "noodles",
            "ramen", "pho", "sandwich", "wrap", "burrito", "taco", "tacos", "bowl", "entree",
            "entrees", "combo", "platter", "bao", "bun", "buns", "sushi", "teriyaki", "risotto",
            "biryani", "shawarma", "kebab", "poutine", "bibimbap", "pad thai", "fried rice",
        }),
    ),
    (
        "side",
        frozenset({
            "side", "sides", "fries", "chips", "rice", "bread", "garlic bread", "coleslaw",
            "slaw", "mashed", "potato", "potatoes", "onion rings", "naan", "roti", "kimchi",
            "sauce", "gravy", "extra",
        }),
    ),
)

_TOKEN_REGEX = re.compile(r"[a-z0-9']+")


def _match_category(text: str) -> Optional[str]:
    words = _TOKEN_REGEX.findall(text.lower())
    if not words:
        return None
    tokens = set(words)
    padded = f" {' '.join(words)} "

    for category, keywords in CATEGORY_KEYWORDS:
        for keyword in keywords:
            if " " in keyword:
                if f" {keyword} " in padded:
                    return category
            elif keyword in tokens:
                return category
    return None


def classify_item(name: str, description: str = "") -> str:
    """Map item text to one of CATEGORIES.

    The name is consulted first so that a description such as "served with a
    drink" cannot outvote "Cheeseburger"; the description only decides when the
    name carries no keyword at all.
    """

    category = _match_category(name or "") or _match_category(f"{name or ''} {description or ''}")
    if category not in CATEGORIES:
        return DEFAULT_CATEGORY
    return category
