# ==============================================================================
# Store Abstract Base Classes
# ==============================================================================
"""
Store ABCs the analytics components read through.

These define the "what" (ordered scans, session counts, trait lookups) not
the "how" (SQL, in-memory lists). Concrete implementations live in
infrastructure/repositories/.

Includes:
- EventStore: Read-only access to the analytic event store
- TraitStore: Read-only access to user profile traits

Neither interface offers a way to write; the analytics core never mutates
either store.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator

from journeys.core.filters import EventScan, TimeRange
from journeys.core.models import Event


class EventStore(ABC):
    """Read-only access to tracked events."""

    @abstractmethod
    def scan(self, scan: EventScan) -> Iterator[Event]:
        """
        Stream events selected by `scan`.

        Events are ordered by (session_id, timestamp, event_id). The iterator
        is lazy; closing it releases the underlying cursor.

        Args:
            scan: Site, time range, filter and event-type restrictions

        Returns:
            Iterator of events

        Raises:
            EventStoreError: If the store cannot be read
        """
        ...

    @abstractmethod
    def count_sessions(self, scan: EventScan) -> int:
        """
        Count distinct sessions with any event matching the base predicate.

        Only site, time range and filter apply; event-type and excluded-name
        restrictions are ignored.

        Raises:
            EventStoreError: If the store cannot be read
        """
        ...

    @abstractmethod
    def session_events(
        self,
        site_id: int,
        session_ids: Iterable[str],
        time_range: TimeRange,
    ) -> Iterator[Event]:
        """
        Stream every event of the given sessions within the time range.

        No filter predicate applies. Ordered by (session_id, timestamp, event_id).

        Raises:
            EventStoreError: If the store cannot be read
        """
        ...

    def close(self) -> None:
        """Close connections and release resources."""


class TraitStore(ABC):
    """Read-only access to user profile traits."""

    @abstractmethod
    def get_traits(self, site_id: int, user_ids: Iterable[str]) -> dict[str, dict]:
        """
        Look up traits for a batch of identified users.

        Args:
            site_id: Site the users belong to
            user_ids: Identified user ids

        Returns:
            Dict mapping user id to its trait key/value mapping
            (users without traits are omitted)

        Raises:
            TraitStoreError: If the lookup fails or times out
        """
        ...

    def close(self) -> None:
        """Close connections and release resources."""
