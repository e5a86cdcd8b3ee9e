import pytest

from menu_worker.etl import classifier
from menu_worker.models import CATEGORIES


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Chocolate Lava Cake", "dessert"),
        ("Garlic Bread", "side"),
        ("Margherita Pizza", "main"),
        ("Caesar Salad", "appetizer"),
        ("Iced Tea", "drink"),
        ("Steamed Pork Buns", "main"),
        ("Soup Dumplings", "appetizer"),
        ("Mystery Box", "other"),
    ],
)
def test_classify_item_by_name(name, expected):
    assert classifier.classify_item(name) == expected


def test_name_keywords_win_over_description():
    assert classifier.classify_item("Classic Cheeseburger Combo", "served with a drink") == "main"


def test_description_used_when_name_has_no_keyword():
    assert classifier.classify_item("House Special", "rich chocolate cake with berries") == "dessert"


def test_multi_word_phrases_match_on_word_boundaries():
    assert classifier.classify_item("Mango Bubble Tea") == "drink"
    assert classifier.classify_item("Onion Rings") == "side"


def test_keyword_sets_are_disjoint_and_known():
    seen = set()
    for category, keywords in classifier.CATEGORY_KEYWORDS:
        assert category in CATEGORIES
        assert not (seen & keywords)
        seen |= keywords


def test_empty_text_defaults_to_other():
    assert classifier.classify_item("") == "other"
