# ==============================================================================
# Step Detail Aggregator
# ==============================================================================
"""
Drill-down into the events behind one journey step.

Events (pageviews and every interaction type) are numbered within their
session by (timestamp, event_id), without collapsing repeats. An event is
retained when its step label equals the requested one and, if a 0-based
step index is given, its number equals index + 1.

Two independent scans produce the response:
- a property histogram over retained events with a non-empty property bag
- the most recent retained events, with or without properties
They are not transactionally linked; under concurrent ingestion the two may
reflect slightly different snapshots.
"""

import heapq
import json
import logging
from collections import Counter
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from itertools import groupby
from operator import attrgetter

from journeys.base.repositories import EventStore
from journeys.core.errors import InvalidRequestError, ScanCancelled
from journeys.core.filters import EventScan
from journeys.core.models import Event, PropertyCount, StepDetails, StepEvent, epoch_seconds
from journeys.core.step_labels import StepLabeler

logger = logging.getLogger(__name__)

MAX_HISTOGRAM_ROWS = 500
MAX_STEP_EVENTS = 100


@dataclass(frozen=True)
class StepDetailQuery:
    """
    Parameters of one step drill-down.

    Attributes:
        scan: Event selection (event-type restrictions are ignored)
        step_label: Step label to drill into
        step_index: Optional 0-based position of the step within the session
        max_rows: Cap on histogram (key, value) rows
        max_events: Cap on raw events listed
    """

    scan: EventScan
    step_label: str
    step_index: int | None = None
    max_rows: int = MAX_HISTOGRAM_ROWS
    max_events: int = MAX_STEP_EVENTS

    def __post_init__(self):
        if not self.step_label:
            raise InvalidRequestError("stepLabel parameter is required")
        if self.step_index is not None and self.step_index < 0:
            raise InvalidRequestError("stepIndex must be >= 0")


def stringify_value(value) -> str:
    """Histogram form of a property value: strings as-is, anything else as compact JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, sort_keys=True)


class StepDetailAggregator:
    """Property histograms and raw events for one step."""

    def __init__(self, store: EventStore, labeler: StepLabeler):
        self.store = store
        self.labeler = labeler

    def iter_step_events(
        self,
        query: StepDetailQuery,
        should_stop: Callable[[], bool] | None = None,
    ) -> Iterator[Event]:
        """Yield every retained event in scan order."""
        target_number = query.step_index + 1 if query.step_index is not None else None
        events = self.store.scan(query.scan.with_all_steps())
        try:
            for session_id, session_events in groupby(events, key=attrgetter("session_id")):
                if should_stop is not None and should_stop():
                    raise ScanCancelled(f"Scan abandoned at session {session_id}")
                for number, event in enumerate(session_events, start=1):
                    if target_number is not None and number != target_number:
                        continue
                    if self.labeler.label(event) == query.step_label:
                        yield event
        finally:
            close = getattr(events, "close", None)
            if close is not None:
                close()

    def property_histogram(
        self,
        query: StepDetailQuery,
        should_stop: Callable[[], bool] | None = None,
    ) -> dict[str, list[PropertyCount]]:
        """
        Count (key, value) pairs across retained events' property bags.

        Rows are ordered by key ascending then count descending (value
        ascending on ties), capped at `query.max_rows`, then grouped by key.

        Returns:
            Dict mapping property key -> values with counts, most common first
        """
        counts: Counter = Counter()
        for event in self.iter_step_events(query, should_stop):
            for key, value in event.properties.items():
                counts[(key, stringify_value(value))] += 1

        rows = sorted(counts.items(), key=lambda item: (item[0][0], -item[1], item[0][1]))
        grouped: dict[str, list[PropertyCount]] = {}
        for (key, value), count in rows[: query.max_rows]:
            grouped.setdefault(key, []).append(PropertyCount(value=value, count=count))
        return grouped

    def recent_events(
        self,
        query: StepDetailQuery,
        should_stop: Callable[[], bool] | None = None,
    ) -> list[StepEvent]:
        """
        The most recent retained events, newest first.

        Returns:
            Up to `query.max_events` events
        """
        latest = heapq.nsmallest(
            query.max_events,
            self.iter_step_events(query, should_stop),
            key=lambda e: (-epoch_seconds(e.timestamp), -e.event_id),
        )
        return [
            StepEvent(
                timestamp=e.timestamp,
                user_id=e.user_id,
                identified_user_id=e.identified_user_id,
                session_id=e.session_id,
            )
            for e in latest
        ]

    def get_details(
        self,
        query: StepDetailQuery,
        should_stop: Callable[[], bool] | None = None,
    ) -> StepDetails:
        """Run both scans and combine them."""
        properties = self.property_histogram(query, should_stop)
        events = self.recent_events(query, should_stop)
        logger.debug(
            "Step %r on site %s: %d property keys, %d events",
            query.step_label,
            query.scan.site_id,
            len(properties),
            len(events),
        )
        return StepDetails(properties=properties, events=events)
