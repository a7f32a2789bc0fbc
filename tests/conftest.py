import textwrap

import pytest

from gherkin_conductor.gherkin import parse_feature_text
from gherkin_conductor.runtime import EventBus, LifecycleEvent
from gherkin_conductor.steps import global_registry


@pytest.fixture(autouse=True)
def clean_registry(monkeypatch):
    """Every test starts with an empty, open global registry and no env filter"""
    monkeypatch.delenv("CUCUMBER_FILTER_TAGS", raising=False)
    monkeypatch.delenv("GHERKIN_CONDUCTOR_CONFIG", raising=False)
    global_registry.reset()
    yield
    global_registry.reset()


@pytest.fixture
def parse():
    """Parse dedented Gherkin text into a Feature"""

    def _parse(text: str):
        return parse_feature_text(textwrap.dedent(text).strip() + "\n", filename="test.feature")

    return _parse


class EventRecorder:
    """Subscribes to every lifecycle event and records (event, title) pairs"""

    def __init__(self, event_bus: EventBus):
        self.events = []
        for event in LifecycleEvent:
            event_bus.subscribe(event, self._recorder(event))

    def _recorder(self, event):
        def record(node, error=None):
            title = getattr(node, "text", None) or getattr(node, "title", None) or str(node)
            self.events.append((event, title))

        return record

    def of(self, *events):
        return [(event, title) for event, title in self.events if event in events]


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def recorder(event_bus):
    return EventRecorder(event_bus)
