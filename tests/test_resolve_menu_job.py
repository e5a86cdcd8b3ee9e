import json

import pytest

from menu_worker.core.config import ConfigError
from menu_worker.core.extractor import ExtractionTransportError
from menu_worker.jobs import resolve_menu
from menu_worker.models import MenuItem, RestaurantMenu

LISTING = "https://www.ubereats.com/ca/store/test-bistro/abc"


class DummySink:
    def __init__(self):
        self.closed = False

    def record(self, attempt):
        pass

    def close(self):
        self.closed = True


@pytest.fixture
def job(monkeypatch):
    state = {"sink": DummySink(), "calls": [], "saved": [], "menu": None, "error": None}

    def fake_resolve(name, **kwargs):
        state["calls"].append((name, kwargs))
        if state["error"] is not None:
            raise state["error"]
        return state["menu"] or RestaurantMenu(restaurant_name=name, source_url="")

    def fake_persist(menu, provenance="scraped"):
        state["saved"].append((menu.restaurant_name, provenance))
        return True

    monkeypatch.setattr(resolve_menu, "build_sink", lambda settings: state["sink"])
    monkeypatch.setattr(resolve_menu, "resolve_and_extract", fake_resolve)
    monkeypatch.setattr(resolve_menu, "persist_menu", fake_persist)
    return state


def test_build_parser_options():
    args = resolve_menu.build_parser().parse_args(
        ["Test Bistro", "--max-items", "3", "--category", "main", "--category", "dessert", "--fallback"]
    )

    assert args.restaurant_name == "Test Bistro"
    assert args.max_items == 3
    assert args.categories == ["main", "dessert"]
    assert args.fallback is True
    assert args.save is False


def test_build_parser_rejects_unknown_category():
    with pytest.raises(SystemExit):
        resolve_menu.build_parser().parse_args(["Test Bistro", "--category", "brunch"])


def test_main_prints_menu_json(job, capsys):
    job["menu"] = RestaurantMenu(
        "Test Bistro",
        LISTING,
        (
            MenuItem(id="item-1", name="Grilled Salmon", price=24.0, category="main", is_popular=True),
            MenuItem(id="item-2", name="Cheesecake", price=8.5, category="dessert"),
        ),
    )

    assert resolve_menu.main(["Test Bistro", "--max-candidates", "2"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["restaurant_name"] == "Test Bistro"
    assert payload["categories"] == ["main", "dessert"]
    assert payload["provenance"] == "scraped"
    assert payload["analysis"]["popular"] == ["Grilled Salmon"]
    assert payload["analysis"]["most_expensive"] == ["Grilled Salmon", "Cheesecake"]
    assert job["calls"][0][1]["max_candidates"] == 2
    assert job["sink"].closed is True
    assert job["saved"] == []


def test_main_uses_sample_menu_only_when_asked(job, capsys):
    assert resolve_menu.main(["Test Bistro"]) == 0
    assert json.loads(capsys.readouterr().out)["items"] == []

    assert resolve_menu.main(["Test Bistro", "--fallback", "--save"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["provenance"] == "synthetic"
    assert len(payload["items"]) == 5
    assert payload["saved"] is True
    assert job["saved"] == [("Test Bistro", "synthetic")]


def test_main_exit_codes(job):
    job["error"] = ConfigError("MAX_CANDIDATES must be an integer")
    assert resolve_menu.main(["Test Bistro"]) == 2

    job["error"] = ExtractionTransportError("browser crashed")
    assert resolve_menu.main(["Test Bistro"]) == 1
    assert job["sink"].closed is True
