# ==============================================================================
# Session Path Builder - Pure Domain Logic
# ==============================================================================
"""
Turns an ordered event scan into per-session step paths.

Input events must already be ordered by (session_id, timestamp, event_id);
the stores guarantee that ordering. Paths are produced lazily, one session
buffered at a time, so counting or filtering consumers never hold the whole
scan in memory.

Path rules:
- Consecutive equal labels collapse into one step (a, a, b -> a, b) and keep
  the timestamp of the first event of the run
- Non-consecutive repeats stay distinct (a, b, a)
- Sessions with fewer than 2 steps after collapsing are dropped
"""

from collections.abc import Callable, Iterable, Iterator
from itertools import groupby
from operator import attrgetter

from journeys.core.errors import ScanCancelled
from journeys.core.models import Event, SessionPath
from journeys.core.step_labels import StepLabeler

MIN_PATH_LENGTH = 2


class SessionPathBuilder:
    """
    Builds SessionPath objects from an ordered event stream.

    Holds no state between calls; one instance can serve concurrent requests.
    """

    def __init__(self, labeler: StepLabeler, min_length: int = MIN_PATH_LENGTH):
        self.labeler = labeler
        self.min_length = min_length

    def collapse(self, session_id: str, events: Iterable[Event]) -> SessionPath:
        """
        Collapse one session's ordered events into a path.

        Args:
            session_id: Session the events belong to
            events: The session's events ordered by timestamp

        Returns:
            SessionPath (possibly shorter than min_length)
        """
        steps: list[str] = []
        timestamps = []
        for event in events:
            label = self.labeler.label(event)
            if steps and steps[-1] == label:
                continue
            steps.append(label)
            timestamps.append(event.timestamp)
        return SessionPath(session_id=session_id, steps=steps, timestamps=timestamps)

    def build(
        self,
        events: Iterable[Event],
        should_stop: Callable[[], bool] | None = None,
    ) -> Iterator[SessionPath]:
        """
        Yield qualifying session paths from an ordered event stream.

        Args:
            events: Events ordered by (session_id, timestamp, event_id)
            should_stop: Optional callable returning True once the caller has
                         gone away. Checked between sessions.

        Yields:
            SessionPath for every session with at least min_length steps

        Raises:
            ScanCancelled: If should_stop() returned True
        """
        for session_id, session_events in groupby(events, key=attrgetter("session_id")):
            if should_stop is not None and should_stop():
                raise ScanCancelled(f"Scan abandoned at session {session_id}")
            path = self.collapse(session_id, session_events)
            if len(path.steps) >= self.min_length:
                yield path


def iter_session_paths(
    store,
    scan,
    labeler: StepLabeler,
    should_stop: Callable[[], bool] | None = None,
) -> Iterator[SessionPath]:
    """
    Scan the store and yield session paths.

    Closing the returned iterator (or raising out of it) closes the
    underlying store scan.

    Args:
        store: EventStore to read from
        scan: EventScan selecting the events
        labeler: StepLabeler shared with every other component
        should_stop: Optional cancellation check
    """
    events = store.scan(scan)
    try:
        yield from SessionPathBuilder(labeler).build(events, should_stop=should_stop)
    finally:
        close = getattr(events, "close", None)
        if close is not None:
            close()
