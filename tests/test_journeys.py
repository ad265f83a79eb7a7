# ==============================================================================
# Tests for the Journey Aggregator
# ==============================================================================
"""
Tests for JourneyQuery validation and JourneyAggregator ranking.
"""

import pytest

from journeys.analytics.journeys import JourneyAggregator, JourneyQuery, passes_step_filters
from journeys.core.errors import InvalidRequestError
from journeys.core.filters import EventFilter, EventScan
from journeys.core.patterns import compile_pattern

# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture()
def populated(store, make_session):
    """Five sessions, two of which never form a path."""
    store.append(make_session("s1", ["/home", "/pricing", "/signup"]))
    store.append(make_session("s2", ["/home", "/pricing", "/signup"]))
    store.append(make_session("s3", ["/home", "/blog/post-1"]))
    store.append(make_session("s4", ["/home"]))
    store.append(make_session("s5", ["/home", "/home"]))
    return store


@pytest.fixture()
def aggregator(populated, labeler):
    return JourneyAggregator(populated, labeler)


# ==============================================================================
# Query validation
# ==============================================================================


class TestJourneyQuery:
    """Range checks on steps and limit."""

    @pytest.mark.parametrize("steps", [1, 11, 0, -3])
    def test_steps_out_of_range(self, scan, steps):
        with pytest.raises(InvalidRequestError, match="Steps parameter"):
            JourneyQuery(scan=scan, steps=steps)

    @pytest.mark.parametrize("limit", [0, 501])
    def test_limit_out_of_range(self, scan, limit):
        with pytest.raises(InvalidRequestError, match="Limit parameter"):
            JourneyQuery(scan=scan, limit=limit)

    def test_bounds_accepted(self, scan):
        JourneyQuery(scan=scan, steps=2, limit=1)
        JourneyQuery(scan=scan, steps=10, limit=500)

    def test_negative_filter_position(self, scan):
        with pytest.raises(InvalidRequestError):
            JourneyQuery(scan=scan, step_filters={-1: compile_pattern("/a")})


# ==============================================================================
# Aggregation
# ==============================================================================


class TestGetJourneys:
    """Tests for ranking, percentages and limits."""

    def test_ranked_by_count(self, aggregator, scan):
        journeys = aggregator.get_journeys(JourneyQuery(scan=scan))
        assert [j.path for j in journeys] == [
            ["/home", "/pricing", "/signup"],
            ["/home", "/blog"],
        ]
        assert [j.count for j in journeys] == [2, 1]

    def test_counts_sum_to_multi_step_sessions(self, aggregator, scan):
        journeys = aggregator.get_journeys(JourneyQuery(scan=scan, limit=500))
        assert sum(j.count for j in journeys) == 3

    def test_percentage_counts_single_step_sessions(self, aggregator, scan):
        """The denominator is all five matching sessions, not the three paths."""
        journeys = aggregator.get_journeys(JourneyQuery(scan=scan))
        assert journeys[0].percentage == pytest.approx(40.0)
        assert journeys[1].percentage == pytest.approx(20.0)
        assert sum(j.percentage for j in journeys) < 100

    def test_truncated_to_steps(self, aggregator, scan):
        journeys = aggregator.get_journeys(JourneyQuery(scan=scan, steps=2))
        assert journeys[0].path == ["/home", "/pricing"]
        assert all(len(j.path) <= 2 for j in journeys)

    def test_limit(self, aggregator, scan):
        journeys = aggregator.get_journeys(JourneyQuery(scan=scan, limit=1))
        assert len(journeys) == 1
        assert journeys[0].count == 2

    def test_ties_ordered_by_path(self, populated, labeler, scan, make_session):
        populated.append(make_session("s6", ["/about", "/home"]))
        journeys = JourneyAggregator(populated, labeler).get_journeys(JourneyQuery(scan=scan))
        assert [j.path for j in journeys[1:]] == [["/about", "/home"], ["/home", "/blog"]]

    def test_idempotent(self, aggregator, scan):
        query = JourneyQuery(scan=scan)
        assert aggregator.get_journeys(query) == aggregator.get_journeys(query)

    def test_empty_store(self, store, labeler, scan):
        assert JourneyAggregator(store, labeler).get_journeys(JourneyQuery(scan=scan)) == []

    def test_filter_predicate_applies_to_denominator(self, store, labeler, make_session):
        store.append(make_session("us1", ["/a", "/b"], country="US"))
        store.append(make_session("us2", ["/a"], country="US"))
        store.append(make_session("de1", ["/a", "/b"], country="DE"))
        scan = EventScan(
            site_id=1,
            event_filter=EventFilter.parse('[{"parameter": "country", "value": ["US"]}]'),
        )
        journeys = JourneyAggregator(store, labeler).get_journeys(JourneyQuery(scan=scan))
        assert len(journeys) == 1
        assert journeys[0].count == 1
        assert journeys[0].percentage == pytest.approx(50.0)


class TestStepFilters:
    """Tests for positional step patterns."""

    def test_filter_by_position(self, aggregator, scan):
        query = JourneyQuery(scan=scan, step_filters={1: compile_pattern("/blog")})
        assert [j.path for j in aggregator.get_journeys(query)] == [["/home", "/blog"]]

    def test_wildcard_filter(self, aggregator, scan):
        query = JourneyQuery(scan=scan, step_filters={2: compile_pattern("/sign*")})
        assert [j.path for j in aggregator.get_journeys(query)] == [
            ["/home", "/pricing", "/signup"]
        ]

    def test_short_journey_fails_position(self, aggregator, scan):
        query = JourneyQuery(scan=scan, step_filters={2: compile_pattern("**")})
        journeys = aggregator.get_journeys(query)
        assert [j.path for j in journeys] == [["/home", "/pricing", "/signup"]]

    def test_filter_keeps_percentage_denominator(self, aggregator, scan):
        query = JourneyQuery(scan=scan, step_filters={1: compile_pattern("/blog")})
        assert aggregator.get_journeys(query)[0].percentage == pytest.approx(20.0)

    def test_passes_step_filters(self):
        filters = {0: compile_pattern("/a"), 1: compile_pattern("/b*")}
        assert passes_step_filters(("/a", "/bee"), filters)
        assert not passes_step_filters(("/a", "/c"), filters)
        assert not passes_step_filters(("/a",), filters)


class TestEventSteps:
    """Interaction events as journey steps."""

    @pytest.fixture()
    def with_events(self, store, make_event):
        store.append(
            [
                make_event("s1", "/home", 0),
                make_event("s1", "/home", 1, type="custom_event", event_name="noise"),
                make_event("s1", "/pricing", 2),
                make_event("s1", "/pricing", 3, type="button_click", event_name="signup"),
            ]
        )
        return store

    def test_events_included_by_default(self, with_events, labeler, scan):
        journeys = JourneyAggregator(with_events, labeler).get_journeys(
            JourneyQuery(scan=scan, steps=4)
        )
        assert journeys[0].path == [
            "/home",
            "event:custom_event:noise",
            "/pricing",
            "event:button_click:signup",
        ]

    def test_pageviews_only(self, with_events, labeler):
        scan = EventScan(site_id=1, include_events=False)
        journeys = JourneyAggregator(with_events, labeler).get_journeys(
            JourneyQuery(scan=scan, steps=4)
        )
        assert journeys[0].path == ["/home", "/pricing"]

    def test_excluded_names(self, with_events, labeler):
        scan = EventScan(site_id=1, exclude_event_names=frozenset({"noise"}))
        journeys = JourneyAggregator(with_events, labeler).get_journeys(
            JourneyQuery(scan=scan, steps=4)
        )
        assert journeys[0].path == ["/home", "/pricing", "event:button_click:signup"]
