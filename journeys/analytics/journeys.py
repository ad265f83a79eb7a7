# ==============================================================================
# Journey Aggregator
# ==============================================================================
"""
Ranks the most common session paths.

Each qualifying session path is truncated to its first `steps` labels;
identical prefixes are grouped and counted. Percentages are relative to every
distinct session matching the site, time range and filter predicate, including
sessions that never made it into a path (single-step sessions, or sessions
with only excluded events), so percentages of the full journey list add up to
less than 100.
"""

import heapq
import logging
from collections import Counter
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from journeys.base.repositories import EventStore
from journeys.core.errors import InvalidRequestError
from journeys.core.filters import EventScan
from journeys.core.models import Journey
from journeys.core.patterns import StepMatcher
from journeys.core.session_paths import iter_session_paths
from journeys.core.step_labels import StepLabeler

logger = logging.getLogger(__name__)

MIN_STEPS = 2
MAX_STEPS = 10
MIN_LIMIT = 1
MAX_LIMIT = 500


@dataclass(frozen=True)
class JourneyQuery:
    """
    Parameters of one journey aggregation.

    Attributes:
        scan: Event selection shared with every other component
        steps: Journey length (2-10)
        limit: Maximum journeys returned (1-500)
        step_filters: 0-based position -> compiled step pattern
    """

    scan: EventScan
    steps: int = 3
    limit: int = 100
    step_filters: Mapping[int, StepMatcher] = field(default_factory=dict)

    def __post_init__(self):
        if not MIN_STEPS <= self.steps <= MAX_STEPS:
            raise InvalidRequestError(
                f"Steps parameter must be a number between {MIN_STEPS} and {MAX_STEPS}"
            )
        if not MIN_LIMIT <= self.limit <= MAX_LIMIT:
            raise InvalidRequestError(
                f"Limit parameter must be a number between {MIN_LIMIT} and {MAX_LIMIT}"
            )
        for position in self.step_filters:
            if position < 0:
                raise InvalidRequestError(f"Step filter position must be >= 0, got {position}")


def passes_step_filters(path: tuple[str, ...], step_filters: Mapping[int, StepMatcher]) -> bool:
    """A journey shorter than a constrained position fails that constraint."""
    for position, matcher in step_filters.items():
        if position >= len(path) or not matcher.matches(path[position]):
            return False
    return True


class JourneyAggregator:
    """Groups truncated session paths into ranked journeys."""

    def __init__(self, store: EventStore, labeler: StepLabeler):
        self.store = store
        self.labeler = labeler

    def journey_counts(
        self,
        query: JourneyQuery,
        should_stop: Callable[[], bool] | None = None,
    ) -> Counter:
        """
        Count sessions per truncated path, before step filters and limit.

        Returns:
            Counter mapping path tuple -> session count
        """
        counts: Counter = Counter()
        for path in iter_session_paths(self.store, query.scan, self.labeler, should_stop):
            counts[tuple(path.steps[: query.steps])] += 1
        return counts

    def get_journeys(
        self,
        query: JourneyQuery,
        should_stop: Callable[[], bool] | None = None,
    ) -> list[Journey]:
        """
        Rank journeys by session count.

        Ties are ordered by the path itself so repeated calls against an
        unchanged store return identical lists.

        Args:
            query: Journey parameters
            should_stop: Optional cancellation check

        Returns:
            Up to `query.limit` journeys, most common first
        """
        counts = self.journey_counts(query, should_stop)
        if not counts:
            return []

        total_sessions = self.store.count_sessions(query.scan)
        candidates = (
            (path, count)
            for path, count in counts.items()
            if passes_step_filters(path, query.step_filters)
        )
        top = heapq.nsmallest(query.limit, candidates, key=lambda item: (-item[1], item[0]))

        logger.debug(
            "Site %s: %d distinct journeys from %d sessions, returning %d",
            query.scan.site_id,
            len(counts),
            total_sessions,
            len(top),
        )
        return [
            Journey(
                path=list(path),
                count=count,
                percentage=(count * 100 / total_sessions) if total_sessions else 0.0,
            )
            for path, count in top
        ]
