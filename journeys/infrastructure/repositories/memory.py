# ==============================================================================
# In-Memory Store Implementations
# ==============================================================================
"""
In-process implementations of the store interfaces.

Provides:
- InMemoryEventStore: Events held in a list, loadable from a JSON lines file
- InMemoryTraitStore: Traits held in a dict

The event store evaluates the same EventScan predicate the SQL builder
compiles, and takes a snapshot per scan, so it behaves like the PostgreSQL
store under concurrent appends. Used by the CLI `--events-file` mode and by
the test suite.
"""

import json
import logging
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path

from journeys.base.repositories import EventStore, TraitStore
from journeys.core.filters import EventScan, TimeRange
from journeys.core.models import Event

logger = logging.getLogger(__name__)


class InMemoryEventStore(EventStore):
    """Append-only event list with snapshot-per-scan reads."""

    def __init__(self, events: Iterable[Event] = ()):
        self._lock = threading.Lock()
        self._events: list[Event] = []
        self._next_id = 1
        self.append(events)

    @classmethod
    def from_jsonl(cls, path: Path) -> "InMemoryEventStore":
        """
        Load events from a JSON lines file (one event object per line).

        Raises:
            ValueError: If a line is not a valid event
        """
        events = []
        with open(path, encoding="utf-8") as fh:
            for line_no, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(Event.model_validate_json(line))
                except ValueError as e:
                    raise ValueError(f"{path}:{line_no}: invalid event: {e}") from e
        logger.info("Loaded %d events from %s", len(events), path)
        return cls(events)

    def append(self, events: Iterable[Event]) -> int:
        """
        Append events, assigning ingestion sequence numbers where missing.

        Returns:
            Count of events appended
        """
        added = 0
        with self._lock:
            for event in events:
                if not event.event_id:
                    event = event.model_copy(update={"event_id": self._next_id})
                self._next_id = max(self._next_id, event.event_id) + 1
                self._events.append(event)
                added += 1
        return added

    def _snapshot(self) -> list[Event]:
        with self._lock:
            return list(self._events)

    def scan(self, scan: EventScan) -> Iterator[Event]:
        selected = [e for e in self._snapshot() if scan.matches(e)]
        selected.sort(key=lambda e: e.sort_key)
        return iter(selected)

    def count_sessions(self, scan: EventScan) -> int:
        return len({e.session_id for e in self._snapshot() if scan.matches_base(e)})

    def session_events(
        self,
        site_id: int,
        session_ids: Iterable[str],
        time_range: TimeRange,
    ) -> Iterator[Event]:
        wanted = set(session_ids)
        selected = [
            e
            for e in self._snapshot()
            if e.site_id == site_id and e.session_id in wanted and time_range.contains(e.timestamp)
        ]
        selected.sort(key=lambda e: e.sort_key)
        return iter(selected)


class InMemoryTraitStore(TraitStore):
    """Traits keyed by (site_id, user_id)."""

    def __init__(self, traits: dict[tuple[int, str], dict] | None = None):
        self._traits = dict(traits or {})

    @classmethod
    def from_json(cls, path: Path, site_id: int) -> "InMemoryTraitStore":
        """Load a {user_id: {trait: value}} JSON object for one site."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls({(site_id, user_id): traits for user_id, traits in data.items()})

    def get_traits(self, site_id: int, user_ids: Iterable[str]) -> dict[str, dict]:
        found = {}
        for user_id in user_ids:
            traits = self._traits.get((site_id, user_id))
            if traits is not None:
                found[user_id] = dict(traits)
        return found
