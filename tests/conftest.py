# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- Event and session factories anchored at a fixed base time
- A clean InMemoryEventStore per test
- The default StepLabeler and an unrestricted EventScan for site 1
"""

from datetime import datetime, timedelta, timezone

import pytest

from journeys.core.filters import EventScan
from journeys.core.models import Event
from journeys.core.step_labels import StepLabeler
from journeys.infrastructure.repositories.memory import InMemoryEventStore

SITE_ID = 1
BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def make_event():
    """Factory for a single event, `minute` minutes after BASE_TIME."""

    def _make(session_id: str, pathname: str = "/", minute: float = 0, **fields) -> Event:
        fields.setdefault("site_id", SITE_ID)
        return Event(
            session_id=session_id,
            pathname=pathname,
            timestamp=BASE_TIME + timedelta(minutes=minute),
            **fields,
        )

    return _make


@pytest.fixture()
def make_session(make_event):
    """Factory for a session of pageviews one minute apart."""

    def _make(session_id: str, paths: list[str], start_minute: float = 0, **fields) -> list[Event]:
        return [
            make_event(session_id, path, start_minute + i, **fields) for i, path in enumerate(paths)
        ]

    return _make


@pytest.fixture()
def store():
    """An empty in-memory event store."""
    return InMemoryEventStore()


@pytest.fixture()
def labeler():
    """The default step labeler."""
    return StepLabeler()


@pytest.fixture()
def scan():
    """Every event of site 1, interaction events included."""
    return EventScan(site_id=SITE_ID)


@pytest.fixture()
def base_time():
    """Timestamp of minute 0 in the event factories."""
    return BASE_TIME
