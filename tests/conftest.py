import sys
from pathlib import Path

import pytest

# Ensure `menu_worker` is importable when running pytest from the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from menu_worker.core import config  # noqa: E402


@pytest.fixture(autouse=True)
def clear_settings_cache():
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


class RecordingSink:
    """Sink double that keeps every attempt in memory."""

    def __init__(self):
        self.history = []
        self.closed = False

    def record(self, attempt):
        self.history.append(attempt)

    def close(self):
        self.closed = True


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def settings():
    return config.Settings(human_delay_min=0.0, human_delay_max=0.0)
