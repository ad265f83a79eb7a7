# ==============================================================================
# Transition Finder
# ==============================================================================
"""
Finds sessions that move from one step to another.

A transition source -> target occurs in a session path when both labels are
present and the first occurrence of source comes before the first occurrence
of target. Optional 0-based positions pin either first occurrence to an exact
index. The transition timestamp is the time of the source step.

Counting and paging are two separate scans built from the same
TransitionQuery. They are not transactionally linked: if events are appended
between them, `total` and the page may describe slightly different snapshots.
"""

import heapq
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from journeys.base.repositories import EventStore
from journeys.core.errors import InvalidRequestError
from journeys.core.filters import EventScan
from journeys.core.models import SessionPath, TransitionMatch, epoch_seconds
from journeys.core.session_paths import iter_session_paths
from journeys.core.step_labels import StepLabeler

logger = logging.getLogger(__name__)

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 200


@dataclass(frozen=True)
class TransitionQuery:
    """
    Parameters of one transition search.

    Attributes:
        scan: Event selection shared with every other component
        source: Step label the session leaves
        target: Step label the session reaches later
        source_step: Required 0-based position of source, if any
        target_step: Required 0-based position of target, if any
    """

    scan: EventScan
    source: str
    target: str
    source_step: int | None = None
    target_step: int | None = None

    def __post_init__(self):
        if not self.source or not self.target:
            raise InvalidRequestError("source and target are required")
        for name in ("source_step", "target_step"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidRequestError(f"{name} must be >= 0")


def match_transition(path: SessionPath, query: TransitionQuery) -> TransitionMatch | None:
    """
    Check one session path for the transition.

    Returns:
        TransitionMatch with 1-based indexes, or None if the session does not qualify
    """
    source_index = path.first_index(query.source)
    target_index = path.first_index(query.target)
    if source_index <= 0 or target_index <= 0 or source_index >= target_index:
        return None
    if query.source_step is not None and source_index != query.source_step + 1:
        return None
    if query.target_step is not None and target_index != query.target_step + 1:
        return None
    return TransitionMatch(
        session_id=path.session_id,
        source_index=source_index,
        target_index=target_index,
        transition_timestamp=path.timestamps[source_index - 1],
    )


class TransitionFinder:
    """Counts and pages sessions containing a transition."""

    def __init__(self, store: EventStore, labeler: StepLabeler):
        self.store = store
        self.labeler = labeler

    def iter_matches(
        self,
        query: TransitionQuery,
        should_stop: Callable[[], bool] | None = None,
    ) -> Iterator[TransitionMatch]:
        """Yield every qualifying session in scan order."""
        for path in iter_session_paths(self.store, query.scan, self.labeler, should_stop):
            match = match_transition(path, query)
            if match is not None:
                yield match

    def count(
        self,
        query: TransitionQuery,
        should_stop: Callable[[], bool] | None = None,
    ) -> int:
        """Total qualifying sessions, independent of any page size."""
        return sum(1 for _ in self.iter_matches(query, should_stop))

    def find(
        self,
        query: TransitionQuery,
        page: int = 1,
        limit: int = 50,
        should_stop: Callable[[], bool] | None = None,
    ) -> list[TransitionMatch]:
        """
        One page of qualifying sessions, newest transition first.

        Ties on the transition timestamp are ordered by session id. Only
        `page * limit` matches are held in memory at any time.

        Args:
            query: Transition parameters
            page: 1-based page number
            limit: Page size (1-200)
            should_stop: Optional cancellation check

        Returns:
            Matches ranked (page-1)*limit+1 .. page*limit
        """
        if not MIN_PAGE_SIZE <= limit <= MAX_PAGE_SIZE:
            raise InvalidRequestError(
                f"limit must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}"
            )
        if page < 1:
            raise InvalidRequestError("page must be >= 1")

        offset = (page - 1) * limit
        ranked = heapq.nsmallest(
            offset + limit,
            self.iter_matches(query, should_stop),
            key=lambda m: (-epoch_seconds(m.transition_timestamp), m.session_id),
        )
        return ranked[offset:]
