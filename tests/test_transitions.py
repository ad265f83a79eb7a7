# ==============================================================================
# Tests for the Transition Finder
# ==============================================================================
"""
Tests for transition matching, counting and paging.
"""

from datetime import timedelta

import pytest

from journeys.analytics.transitions import TransitionFinder, TransitionQuery, match_transition
from journeys.core.errors import InvalidRequestError
from journeys.core.models import Pagination, SessionPath

# ==============================================================================
# Helpers
# ==============================================================================


def _path(base_time, *steps) -> SessionPath:
    return SessionPath(
        session_id="s1",
        steps=list(steps),
        timestamps=[base_time + timedelta(minutes=i) for i in range(len(steps))],
    )


@pytest.fixture()
def paged_store(store, make_session):
    """120 sessions /a -> /b, session i transitioning at minute i."""
    for i in range(120):
        store.append(make_session(f"s{i:03d}", ["/a", "/b"], start_minute=i))
    return store


# ==============================================================================
# Matching
# ==============================================================================


class TestMatchTransition:
    """Tests for the per-path transition rule."""

    def test_forward_transition(self, scan, base_time):
        match = match_transition(_path(base_time, "/a", "/b"), TransitionQuery(scan, "/a", "/b"))
        assert match is not None
        assert (match.source_index, match.target_index) == (1, 2)
        assert match.transition_timestamp == base_time

    def test_reverse_does_not_match(self, scan, base_time):
        assert match_transition(_path(base_time, "/a", "/b"), TransitionQuery(scan, "/b", "/a")) is None

    def test_missing_step(self, scan, base_time):
        assert match_transition(_path(base_time, "/a", "/c"), TransitionQuery(scan, "/a", "/b")) is None

    def test_uses_first_occurrences(self, scan, base_time):
        """First /b comes before first /a, so the later /a -> /b does not count."""
        path = _path(base_time, "/b", "/a", "/b")
        assert match_transition(path, TransitionQuery(scan, "/a", "/b")) is None

    def test_non_adjacent(self, scan, base_time):
        match = match_transition(
            _path(base_time, "/a", "/x", "/b"), TransitionQuery(scan, "/a", "/b")
        )
        assert (match.source_index, match.target_index) == (1, 3)

    def test_positions(self, scan, base_time):
        path = _path(base_time, "/a", "/x", "/b")
        assert match_transition(path, TransitionQuery(scan, "/a", "/b", source_step=0, target_step=2))
        assert match_transition(path, TransitionQuery(scan, "/a", "/b", target_step=1)) is None
        assert match_transition(path, TransitionQuery(scan, "/a", "/b", source_step=1)) is None

    def test_source_position_zero_is_a_constraint(self, scan, base_time):
        path = _path(base_time, "/x", "/a", "/b")
        assert match_transition(path, TransitionQuery(scan, "/a", "/b")) is not None
        assert match_transition(path, TransitionQuery(scan, "/a", "/b", source_step=0)) is None

    def test_timestamp_is_source_step(self, scan, base_time):
        match = match_transition(
            _path(base_time, "/x", "/a", "/b"), TransitionQuery(scan, "/a", "/b")
        )
        assert match.transition_timestamp == base_time + timedelta(minutes=1)


class TestTransitionQuery:
    """Validation of transition parameters."""

    @pytest.mark.parametrize("source, target", [("", "/b"), ("/a", ""), (None, "/b")])
    def test_source_and_target_required(self, scan, source, target):
        with pytest.raises(InvalidRequestError, match="source and target are required"):
            TransitionQuery(scan, source, target)

    def test_negative_positions(self, scan):
        with pytest.raises(InvalidRequestError):
            TransitionQuery(scan, "/a", "/b", source_step=-1)


# ==============================================================================
# Counting and paging
# ==============================================================================


class TestFind:
    """Tests for page selection and ordering."""

    def test_second_page(self, paged_store, labeler, scan):
        finder = TransitionFinder(paged_store, labeler)
        query = TransitionQuery(scan, "/a", "/b")
        page = finder.find(query, page=2, limit=50)
        assert len(page) == 50
        # Newest first: ranks 51..100 are sessions 69 down to 20
        assert page[0].session_id == "s069"
        assert page[-1].session_id == "s020"

    def test_total_and_pages(self, paged_store, labeler, scan):
        finder = TransitionFinder(paged_store, labeler)
        total = finder.count(TransitionQuery(scan, "/a", "/b"))
        assert total == 120
        assert Pagination.build(total, 2, 50).totalPages == 3

    def test_last_page_partial(self, paged_store, labeler, scan):
        page = TransitionFinder(paged_store, labeler).find(
            TransitionQuery(scan, "/a", "/b"), page=3, limit=50
        )
        assert len(page) == 20
        assert page[-1].session_id == "s000"

    def test_page_past_end(self, paged_store, labeler, scan):
        page = TransitionFinder(paged_store, labeler).find(
            TransitionQuery(scan, "/a", "/b"), page=4, limit=50
        )
        assert page == []

    def test_ties_by_session_id(self, store, labeler, scan, make_session):
        store.append(make_session("zeta", ["/a", "/b"]))
        store.append(make_session("alpha", ["/a", "/b"]))
        page = TransitionFinder(store, labeler).find(TransitionQuery(scan, "/a", "/b"))
        assert [m.session_id for m in page] == ["alpha", "zeta"]

    @pytest.mark.parametrize("limit", [0, 201])
    def test_limit_bounds(self, store, labeler, scan, limit):
        with pytest.raises(InvalidRequestError, match="limit must be between 1 and 200"):
            TransitionFinder(store, labeler).find(TransitionQuery(scan, "/a", "/b"), limit=limit)

    def test_page_bounds(self, store, labeler, scan):
        with pytest.raises(InvalidRequestError):
            TransitionFinder(store, labeler).find(TransitionQuery(scan, "/a", "/b"), page=0)


class TestDualScans:
    """Count and page are separate reads over the same predicate."""

    def test_append_between_scans(self, paged_store, labeler, scan, make_session):
        finder = TransitionFinder(paged_store, labeler)
        query = TransitionQuery(scan, "/a", "/b")

        total_before = finder.count(query)
        for i in range(5):
            paged_store.append(make_session(f"late{i}", ["/a", "/b"], start_minute=500 + i))
        page = finder.find(query, page=1, limit=10)
        total_after = finder.count(query)

        assert total_after - total_before == 5
        assert [m.session_id for m in page[:5]] == [f"late{i}" for i in range(4, -1, -1)]
        assert {m.session_id for m in page[5:]} <= {f"s{i:03d}" for i in range(120)}
