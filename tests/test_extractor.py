import pytest
from playwright.sync_api import Error as PlaywrightError

from menu_worker.core import extractor as extractor_module
from menu_worker.core.extractor import ExtractionTransportError, MenuExtractor, scrape_with_retry
from menu_worker.models import RestaurantMenu

LISTING_URL = "https://www.ubereats.com/ca/store/test-bistro/abc123"

MENU_HTML = """
<html><body><h1>Test Bistro</h1>
<div data-testid="store-menu"><ul>
  <li data-testid="store-item-1"><h3>Margherita Pizza</h3><span class="price">$18.99</span></li>
  <li data-testid="store-item-2"><h3>Chocolate Lava Cake</h3><span class="price">$8.99</span></li>
</ul></div>
</body></html>
"""

EMPTY_HTML = "<html><body><h1>Test Bistro</h1><p>Loading...</p></body></html>"


class DummyBrowser:
    """Returns the queued snapshots from successive content() calls."""

    def __init__(self, snapshots, title="Test Bistro | Uber Eats", goto_error=None):
        self.snapshots = list(snapshots)
        self._title = title
        self.goto_error = goto_error
        self.scrolled = 0
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False

    def goto(self, url):
        if self.goto_error is not None:
            raise self.goto_error
        return True

    def wait_for_any(self, selectors, timeout_ms=None):
        return None

    def pause(self, minimum=None, maximum=None):
        return 0.0

    def content(self):
        if len(self.snapshots) > 1:
            return self.snapshots.pop(0)
        return self.snapshots[0]

    def title(self):
        return self._title

    def scroll_through(self, steps=6):
        self.scrolled += 1


def make_extractor(sink, settings, browser):
    return MenuExtractor(sink, settings=settings, session_factory=lambda: browser)


def test_extract_returns_menu_and_records_scrape(sink, settings):
    browser = DummyBrowser([MENU_HTML])

    menu = make_extractor(sink, settings, browser).extract(LISTING_URL)

    assert menu.restaurant_name == "Test Bistro"
    assert menu.source_url == LISTING_URL
    assert [item.name for item in menu.items] == ["Margherita Pizza", "Chocolate Lava Cake"]
    assert menu.categories == {"main", "dessert"}
    assert browser.scrolled == 0
    assert browser.closed is True

    attempt = sink.history[-1]
    assert attempt.kind == "scrape"
    assert attempt.success is True
    assert attempt.item_count == 2
    assert attempt.method.startswith("sectioned:")


def test_extract_scrolls_when_first_snapshot_is_empty(sink, settings):
    browser = DummyBrowser([EMPTY_HTML, MENU_HTML])

    menu = make_extractor(sink, settings, browser).extract(LISTING_URL)

    assert browser.scrolled == 1
    assert len(menu.items) == 2
    assert sink.history[-1].method.startswith("scroll-retry:")


def test_extract_with_nothing_found_is_empty_not_an_error(sink, settings):
    browser = DummyBrowser([EMPTY_HTML])

    menu = make_extractor(sink, settings, browser).extract(LISTING_URL)

    assert menu.items == ()
    assert menu.categories == frozenset()
    assert sink.history[-1].kind == "scrape"
    assert sink.history[-1].success is False
    assert browser.closed is True


def test_extract_blocked_page_is_terminal_empty(sink, settings):
    browser = DummyBrowser(["<html><body><p>Are you a robot?</p></body></html>"])

    menu = make_extractor(sink, settings, browser).extract(LISTING_URL)

    assert menu.is_empty
    assert browser.scrolled == 0
    assert sink.history[-1].method == "blocked"


def test_transport_failure_raises_and_releases_browser(sink, settings):
    browser = DummyBrowser([MENU_HTML], goto_error=PlaywrightError("net::ERR_CONNECTION_RESET"))

    with pytest.raises(ExtractionTransportError):
        make_extractor(sink, settings, browser).extract(LISTING_URL)

    assert browser.closed is True
    assert sink.history[-1].kind == "error"
    assert "ERR_CONNECTION_RESET" in sink.history[-1].error_summary


def test_launch_failure_is_a_transport_error(sink, settings):
    def failing_factory():
        raise PlaywrightError("Executable doesn't exist")

    extractor = MenuExtractor(sink, settings=settings, session_factory=failing_factory)

    with pytest.raises(ExtractionTransportError):
        extractor.extract(LISTING_URL)


class FlakyExtractor:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def extract(self, url):
        self.calls += 1
        if self.calls <= self.failures:
            raise ExtractionTransportError(f"attempt {self.calls} failed")
        return RestaurantMenu(restaurant_name="Test Bistro", source_url=url)


def test_scrape_with_retry_backs_off_exponentially():
    sleeps = []
    flaky = FlakyExtractor(failures=2)

    menu = scrape_with_retry(flaky, LISTING_URL, sleep=sleeps.append)

    assert menu.source_url == LISTING_URL
    assert flaky.calls == 3
    assert sleeps == [1.0, 2.0]
    assert sum(sleeps) >= 3.0


def test_scrape_with_retry_gives_up_after_three_retries():
    sleeps = []
    flaky = FlakyExtractor(failures=10)

    with pytest.raises(ExtractionTransportError, match="attempt 4"):
        scrape_with_retry(flaky, LISTING_URL, sleep=sleeps.append)

    assert flaky.calls == 4
    assert sleeps == [1.0, 2.0, 4.0]


def test_default_retry_policy_constants():
    assert extractor_module.MAX_RETRIES == 3
    assert extractor_module.BASE_BACKOFF_SECONDS == 1.0
