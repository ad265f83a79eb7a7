# ==============================================================================
# Tests for the SQL Builder
# ==============================================================================
"""
Tests for compiling EventScan predicates into psycopg2 composables.

Composables are inspected through repr() so no database connection is needed;
the point is that every caller-supplied value travels as a bound parameter.
"""

from psycopg2 import sql

from journeys.core.filters import EventFilter, EventScan, Filter, TimeRange
from journeys.infrastructure.sql import (
    build_count_sessions_query,
    build_scan_query,
    build_session_events_query,
    build_traits_query,
    compile_filter,
    compile_scan_predicate,
)

TABLE = sql.Identifier("analytics", "events")
HOSTILE = "x' OR 1=1 --"


class TestCompileFilter:
    """Tests for single filter conditions."""

    def test_equals_binds_list(self):
        fragment = compile_filter(Filter(parameter="country", value=["US", HOSTILE]))
        assert fragment.params == [["US", HOSTILE]]
        assert HOSTILE not in repr(fragment.query)

    def test_contains_escapes_like(self):
        fragment = compile_filter(Filter(parameter="pathname", type="contains", value=["50%_off"]))
        assert fragment.params == ["%50\\%\\_off%"]

    def test_contains_one_param_per_value(self):
        fragment = compile_filter(Filter(parameter="pathname", type="contains", value=["a", "b"]))
        assert len(fragment.params) == 2

    def test_negation(self):
        fragment = compile_filter(Filter(parameter="country", type="not_equals", value=["US"]))
        assert "NOT" in repr(fragment.query)


class TestScanQueries:
    """Tests for the full event scan queries."""

    def test_scan_params_in_order(self, base_time):
        scan = EventScan(
            site_id=3,
            time_range=TimeRange(start=base_time),
            event_filter=EventFilter(filters=(Filter(parameter="country", value=[HOSTILE]),)),
            include_events=False,
        )
        fragment = build_scan_query(TABLE, scan)
        assert fragment.params == [3, base_time, [HOSTILE], ["pageview"]]
        assert HOSTILE not in repr(fragment.query)

    def test_excluded_names_bound(self):
        scan = EventScan(site_id=1, exclude_event_names=frozenset({HOSTILE}))
        fragment = compile_scan_predicate(scan)
        assert fragment.params[-1] == [HOSTILE]
        assert HOSTILE not in repr(fragment.query)

    def test_count_uses_base_predicate(self):
        scan = EventScan(site_id=1, include_events=False, exclude_event_names=frozenset({"x"}))
        fragment = build_count_sessions_query(TABLE, scan)
        assert fragment.params == [1]

    def test_session_events(self, base_time):
        fragment = build_session_events_query(
            TABLE, 1, ["s1", "s2"], TimeRange(start=base_time, end=base_time)
        )
        assert fragment.params == [1, ["s1", "s2"], base_time, base_time]

    def test_traits(self):
        fragment = build_traits_query(sql.Identifier("app", "user_traits"), 1, ["alice"])
        assert fragment.params == [1, ["alice"]]
