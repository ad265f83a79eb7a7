# ==============================================================================
# PostgreSQL Store Implementations
# ==============================================================================
"""
PostgreSQL implementations of the store interfaces.

Provides:
- PostgreSQLEventStore: Streaming, read-only scans of the events table
- PostgreSQLTraitStore: Bounded trait lookups against the application database
"""

import logging
import math
from collections.abc import Iterable, Iterator
from uuid import uuid4

import psycopg2
from psycopg2 import sql
from psycopg2.pool import ThreadedConnectionPool

from journeys.base.repositories import EventStore, TraitStore
from journeys.core.errors import EventStoreError, TraitStoreError
from journeys.core.filters import EventScan, TimeRange
from journeys.core.models import Event
from journeys.infrastructure.sql import (
    EVENT_COLUMNS,
    SqlFragment,
    build_count_sessions_query,
    build_scan_query,
    build_session_events_query,
    build_traits_query,
)
from journeys.utils.config import Settings, get_settings
from journeys.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_light

logger = logging.getLogger(__name__)

# Connection timeout
CONNECT_TIMEOUT = 10

# Pool bounds for concurrent request scans
POOL_MIN_CONNECTIONS = 1
POOL_MAX_CONNECTIONS = 10


def _add_connect_timeout(conn_string: str, seconds: int = CONNECT_TIMEOUT) -> str:
    """Add connect_timeout to connection string if not present."""
    if "connect_timeout" not in conn_string:
        separator = "&" if "?" in conn_string else "?"
        return f"{conn_string}{separator}connect_timeout={seconds}"
    return conn_string


def _row_to_event(row: tuple) -> Event:
    record = dict(zip(EVENT_COLUMNS, row))
    record["properties"] = record.pop("props")
    return Event.model_validate(record)


class PostgreSQLEventStore(EventStore):
    """
    PostgreSQL implementation of EventStore.

    Each scan checks a connection out of a ThreadedConnectionPool, runs in its
    own read-only transaction (one snapshot per scan) and streams rows through
    a named server-side cursor, `scan_batch_size` rows per round trip. Two
    scans issued for one request are therefore not transactionally linked.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the event store.

        Args:
            settings: Application settings. If None, uses get_settings().
        """
        self._settings = settings or get_settings()
        self._pool: ThreadedConnectionPool | None = None
        pg = self._settings.postgres
        self._table = sql.Identifier(pg.schema_name, pg.events_table)
        self._batch_size = pg.scan_batch_size
        self._statement_timeout_ms = pg.statement_timeout_ms

    @retry_light(POSTGRES_RETRY_EXCEPTIONS, logger)
    def connect(self) -> None:
        """Create the connection pool."""
        if self._pool is not None:
            return
        conn_string = _add_connect_timeout(self._settings.postgres.connection_string)
        self._pool = ThreadedConnectionPool(POOL_MIN_CONNECTIONS, POOL_MAX_CONNECTIONS, conn_string)
        logger.info(
            "PostgreSQLEventStore connected (schema=%s)", self._settings.postgres.schema_name
        )

    def _checkout(self):
        if self._pool is None:
            try:
                self.connect()
            except psycopg2.Error as e:
                raise EventStoreError(f"Event store unreachable: {e}") from e
        try:
            conn = self._pool.getconn()
        except psycopg2.Error as e:
            raise EventStoreError(f"No event store connection available: {e}") from e
        try:
            conn.readonly = True
        except psycopg2.Error as e:
            self._pool.putconn(conn, close=True)
            raise EventStoreError(f"Event store connection unusable: {e}") from e
        return conn

    def _release(self, conn) -> None:
        """End the read-only transaction and hand the connection back to the pool."""
        try:
            conn.rollback()
        except psycopg2.Error as e:
            logger.warning("Rollback failed, discarding connection: %s", e)
        self._pool.putconn(conn, close=bool(conn.closed))

    def _begin(self, cur) -> None:
        if self._statement_timeout_ms:
            cur.execute("SET LOCAL statement_timeout = %s", (self._statement_timeout_ms,))

    def _stream(self, fragment: SqlFragment, context: dict) -> Iterator[Event]:
        conn = self._checkout()
        try:
            with conn.cursor() as setup:
                self._begin(setup)
            with conn.cursor(name=f"journeys_scan_{uuid4().hex}") as cur:
                cur.itersize = self._batch_size
                cur.execute(fragment.query, fragment.params)
                for row in cur:
                    yield _row_to_event(row)
        except psycopg2.Error as e:
            raise EventStoreError(f"Event scan failed: {e}", context=context) from e
        finally:
            # Runs whether the scan finished, failed or was abandoned
            self._release(conn)

    def scan(self, scan: EventScan) -> Iterator[Event]:
        fragment = build_scan_query(self._table, scan)
        return self._stream(fragment, context=scan.describe())

    def count_sessions(self, scan: EventScan) -> int:
        fragment = build_count_sessions_query(self._table, scan)
        conn = self._checkout()
        try:
            with conn.cursor() as cur:
                self._begin(cur)
                cur.execute(fragment.query, fragment.params)
                row = cur.fetchone()
                return int(row[0]) if row else 0
        except psycopg2.Error as e:
            raise EventStoreError(f"Session count failed: {e}", context=scan.describe()) from e
        finally:
            self._release(conn)

    def session_events(
        self,
        site_id: int,
        session_ids: Iterable[str],
        time_range: TimeRange,
    ) -> Iterator[Event]:
        session_ids = list(session_ids)
        if not session_ids:
            return iter(())
        fragment = build_session_events_query(self._table, site_id, session_ids, time_range)
        context = {"site_id": site_id, "session_count": len(session_ids)}
        return self._stream(fragment, context=context)

    def close(self) -> None:
        """Close every pooled connection."""
        if self._pool:
            try:
                self._pool.closeall()
                logger.info("PostgreSQLEventStore connections closed")
            except psycopg2.Error as e:
                logger.warning("Error closing connections: %s", e)
            finally:
                self._pool = None


class PostgreSQLTraitStore(TraitStore):
    """
    PostgreSQL implementation of TraitStore.

    Opens a short-lived connection per lookup. Both the connect and the query
    are bounded by `traits.timeout_ms`, so a slow application database delays
    a response by at most that long.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        traits = self._settings.traits
        self._table = sql.Identifier(traits.schema_name, traits.traits_table)
        self._timeout_ms = traits.timeout_ms

    def _connect(self):
        traits = self._settings.traits
        connect_timeout = max(1, math.ceil(self._timeout_ms / 1000))
        return psycopg2.connect(
            _add_connect_timeout(traits.connection_string, connect_timeout),
            options=f"-c statement_timeout={self._timeout_ms}",
        )

    def get_traits(self, site_id: int, user_ids: Iterable[str]) -> dict[str, dict]:
        user_ids = sorted(set(user_ids))
        if not user_ids:
            return {}
        fragment = build_traits_query(self._table, site_id, user_ids)
        try:
            conn = self._connect()
        except psycopg2.Error as e:
            raise TraitStoreError(f"Trait store unreachable: {e}") from e
        try:
            with conn.cursor() as cur:
                cur.execute(fragment.query, fragment.params)
                return {user_id: traits or {} for user_id, traits in cur.fetchall()}
        except psycopg2.Error as e:
            raise TraitStoreError(f"Trait lookup failed: {e}") from e
        finally:
            conn.close()


def check_postgresql_connection(settings: Settings | None = None) -> bool:
    """
    Check if the event store is reachable.

    Args:
        settings: Application settings. If None, uses get_settings().

    Returns:
        True if connection successful, False otherwise
    """
    try:
        settings = settings or get_settings()
        conn_string = _add_connect_timeout(settings.postgres.connection_string)
        conn = psycopg2.connect(conn_string)
        conn.close()
        return True
    except psycopg2.Error:
        return False
