# ==============================================================================
# SQL Builder for Event Scans
# ==============================================================================
"""
Compiles EventScan predicates into psycopg2 SQL composables.

Structure (schema, table and column names, fixed clause templates) is built
with psycopg2.sql objects; every caller-supplied value travels as a bound
parameter. Nothing from a request is ever formatted into the query text.
"""

from collections.abc import Iterable
from typing import NamedTuple

from psycopg2 import sql

from journeys.core.filters import EventScan, Filter, TimeRange

# Column order of every event SELECT; rows are zipped against this tuple
EVENT_COLUMNS: tuple[str, ...] = (
    "event_id",
    "site_id",
    "session_id",
    "timestamp",
    "type",
    "pathname",
    "event_name",
    "props",
    "user_id",
    "identified_user_id",
    "hostname",
    "referrer",
    "channel",
    "country",
    "region",
    "city",
    "language",
    "device_type",
    "browser",
    "browser_version",
    "operating_system",
    "operating_system_version",
    "screen_width",
    "screen_height",
    "ip",
)

_ORDER_BY = sql.SQL("ORDER BY {}, {}, {}").format(
    sql.Identifier("session_id"), sql.Identifier("timestamp"), sql.Identifier("event_id")
)


class SqlFragment(NamedTuple):
    """A composable clause and the parameters it binds, in placeholder order."""

    query: sql.Composable
    params: list

    @classmethod
    def join(cls, separator: str, fragments: Iterable["SqlFragment"]) -> "SqlFragment":
        fragments = list(fragments)
        params: list = []
        for fragment in fragments:
            params.extend(fragment.params)
        return cls(sql.SQL(separator).join(f.query for f in fragments), params)


def _like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def compile_filter(flt: Filter) -> SqlFragment:
    """Compile one column condition."""
    column = sql.SQL("COALESCE({}::text, '')").format(sql.Identifier(flt.parameter))

    if flt.type in ("equals", "not_equals"):
        clause = sql.SQL("{} = ANY(%s)").format(column)
        params = [list(flt.value)]
    else:
        clause = sql.SQL(" OR ").join(
            sql.SQL("{} ILIKE %s").format(column) for _ in flt.value
        )
        clause = sql.SQL("({})").format(clause)
        params = [f"%{_like_escape(v)}%" for v in flt.value]

    if flt.type.startswith("not_"):
        clause = sql.SQL("NOT {}").format(clause)
    return SqlFragment(clause, params)


def compile_time_range(time_range: TimeRange) -> list[SqlFragment]:
    fragments = []
    if time_range.start is not None:
        fragments.append(
            SqlFragment(sql.SQL("{} >= %s").format(sql.Identifier("timestamp")), [time_range.start])
        )
    if time_range.end is not None:
        fragments.append(
            SqlFragment(sql.SQL("{} < %s").format(sql.Identifier("timestamp")), [time_range.end])
        )
    return fragments


def compile_base_predicate(scan: EventScan) -> SqlFragment:
    """Site, time range and filter conditions."""
    fragments = [SqlFragment(sql.SQL("{} = %s").format(sql.Identifier("site_id")), [scan.site_id])]
    fragments.extend(compile_time_range(scan.time_range))
    fragments.extend(compile_filter(f) for f in scan.event_filter.filters)
    return SqlFragment.join(" AND ", fragments)


def compile_scan_predicate(scan: EventScan) -> SqlFragment:
    """Base predicate plus event-type and excluded-name restrictions."""
    fragments = [
        compile_base_predicate(scan),
        SqlFragment(sql.SQL("{} = ANY(%s)").format(sql.Identifier("type")), [list(scan.allowed_types)]),
    ]
    if scan.exclude_event_names:
        fragments.append(
            SqlFragment(
                sql.SQL("NOT ({} = ANY(%s) AND {} IS NOT NULL AND {} = ANY(%s))").format(
                    sql.Identifier("type"),
                    sql.Identifier("event_name"),
                    sql.Identifier("event_name"),
                ),
                [list(scan.interaction_types), sorted(scan.exclude_event_names)],
            )
        )
    return SqlFragment.join(" AND ", fragments)


def _select_events(table: sql.Composable, where: SqlFragment) -> SqlFragment:
    query = sql.SQL("SELECT {columns} FROM {table} WHERE {where} {order}").format(
        columns=sql.SQL(", ").join(sql.Identifier(c) for c in EVENT_COLUMNS),
        table=table,
        where=where.query,
        order=_ORDER_BY,
    )
    return SqlFragment(query, where.params)


def build_scan_query(table: sql.Composable, scan: EventScan) -> SqlFragment:
    """Ordered event scan for path building."""
    return _select_events(table, compile_scan_predicate(scan))


def build_count_sessions_query(table: sql.Composable, scan: EventScan) -> SqlFragment:
    """Distinct sessions matching the base predicate."""
    where = compile_base_predicate(scan)
    query = sql.SQL("SELECT COUNT(DISTINCT {}) FROM {} WHERE {}").format(
        sql.Identifier("session_id"), table, where.query
    )
    return SqlFragment(query, where.params)


def build_session_events_query(
    table: sql.Composable,
    site_id: int,
    session_ids: list[str],
    time_range: TimeRange,
) -> SqlFragment:
    """Every event of the given sessions within the time range."""
    fragments = [
        SqlFragment(sql.SQL("{} = %s").format(sql.Identifier("site_id")), [site_id]),
        SqlFragment(sql.SQL("{} = ANY(%s)").format(sql.Identifier("session_id")), [session_ids]),
        *compile_time_range(time_range),
    ]
    return _select_events(table, SqlFragment.join(" AND ", fragments))


def build_traits_query(table: sql.Composable, site_id: int, user_ids: list[str]) -> SqlFragment:
    """Trait rows for a batch of identified users."""
    query = sql.SQL("SELECT {}, {} FROM {} WHERE {} = %s AND {} = ANY(%s)").format(
        sql.Identifier("user_id"),
        sql.Identifier("traits"),
        table,
        sql.Identifier("site_id"),
        sql.Identifier("user_id"),
    )
    return SqlFragment(query, [site_id, user_ids])
