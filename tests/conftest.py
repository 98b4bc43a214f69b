"""
Shared test fixtures.
"""

from typing import Any, List, Tuple

import pytest


class EventCollector:
    """Listener that remembers every (event, payload) it receives."""

    def __init__(self):
        self.events: List[Tuple[str, Any]] = []

    def __call__(self, event_name: str, payload: Any) -> None:
        self.events.append((event_name, payload))

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def payloads(self, event_name: str) -> List[Any]:
        return [payload for name, payload in self.events if name == event_name]


@pytest.fixture
def collector() -> EventCollector:
    return EventCollector()
