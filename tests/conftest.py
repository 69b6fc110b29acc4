"""
Shared pytest fixtures for quickadd tests.

This module provides common fixtures used across all test files, including:
- Time freezing utilities
- An isolated QUICKADD_HOME for every test
- Parser configurations for both syntax modes
- A reference cache populated with sample projects and labels
"""

import json
import pytest
from datetime import datetime
from freezegun import freeze_time

from quickadd.cache import ReferenceCache
from quickadd.session import EditorSession
from quickadd.tokens import ParserConfig, SyntaxMode

# 2025-01-01 is a Wednesday
FROZEN_NOW = datetime(2025, 1, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def quickadd_home(tmp_path, monkeypatch):
    """
    Points QUICKADD_HOME at a fresh directory so that config files and
    log_msg output never land in the real home directory.
    """
    home = tmp_path / "quickadd-home"
    monkeypatch.setenv("QUICKADD_HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    return home


@pytest.fixture
def frozen_time():
    """
    Provides a freezegun context that freezes time to 2025-01-01 12:00:00.

    Usage:
        def test_something(frozen_time):
            now = datetime.now()  # Returns 2025-01-01 12:00:00
    """
    with freeze_time(FROZEN_NOW) as frozen:
        yield frozen


@pytest.fixture
def freeze_at():
    """
    Returns a function that freezes time to a specific datetime.

    Usage:
        def test_something(freeze_at):
            with freeze_at("2025-06-15 10:00:00"):
                ...
    """
    return freeze_time


@pytest.fixture
def now():
    return FROZEN_NOW


@pytest.fixture
def todoist():
    return ParserConfig(syntax_mode=SyntaxMode.TODOIST)


@pytest.fixture
def vikunja():
    return ParserConfig(syntax_mode=SyntaxMode.VIKUNJA)


@pytest.fixture
def sample_refs():
    """Projects and labels as the remote API would hand them over."""
    return {
        "projects": [
            {"id": 1, "title": "Inbox"},
            {"id": 2, "title": "Groceries"},
            {"id": 3, "title": "Errands"},
            {"id": 4, "title": "Grocery Archive"},
            {"id": 5, "title": "Work"},
            {"id": 6, "title": "Home Office"},
            {"id": 7, "title": "Garden"},
            {"id": 8, "title": "Reading"},
            {"id": 9, "title": "Taxes"},
            {"id": 10, "title": "Travel"},
        ],
        "labels": [
            {"id": 11, "title": "errand"},
            {"id": 12, "title": "urgent"},
            {"id": 13, "title": "waiting"},
        ],
    }


@pytest.fixture
def cache(sample_refs):
    c = ReferenceCache()
    c.set_projects(sample_refs["projects"])
    c.set_labels(sample_refs["labels"])
    return c


@pytest.fixture
def refs_file(tmp_path, sample_refs):
    path = tmp_path / "refs.json"
    path.write_text(json.dumps(sample_refs), encoding="utf-8")
    return path


@pytest.fixture
def session(todoist, cache):
    return EditorSession(todoist, cache=cache)


class RecordingView:
    """Stands in for the host menu; remembers what it was asked to show."""

    def __init__(self):
        self.rendered = []
        self.hidden = 0

    def render(self, state):
        self.rendered.append(state)

    def hide(self):
        self.hidden += 1

    @property
    def last(self):
        return self.rendered[-1] if self.rendered else None


@pytest.fixture
def view():
    return RecordingView()


@pytest.fixture
def selections():
    """Collects (item, trigger_start, prefix) commits from a controller."""
    return []
