# ==============================================================================
# Database Utilities
# ==============================================================================
"""
Schema management for the analytic event store.

Renders schema/init.sql (a Jinja2 template) for the configured schema name
and applies it. Connection errors are retried with exponential backoff; the
analytics code itself never writes to the database.
"""

import logging
from pathlib import Path

import psycopg2
from jinja2 import Template
from psycopg2 import sql

from journeys.utils.config import Settings, get_settings
from journeys.utils.paths import get_init_sql_path
from journeys.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_standard

logger = logging.getLogger(__name__)


def get_schema_file() -> Path | None:
    """Get the schema init.sql path, or None if not found."""
    path = get_init_sql_path()
    if path.exists():
        return path
    cwd_path = Path.cwd() / "schema" / "init.sql"
    if cwd_path.exists():
        return cwd_path
    return None


def render_schema_sql(settings: Settings | None = None) -> str:
    """
    Render the schema SQL template for the configured schema and tables.

    Raises:
        RuntimeError: If the template cannot be found
    """
    settings = settings or get_settings()
    schema_file = get_schema_file()
    if not schema_file:
        raise RuntimeError(
            "Schema file (schema/init.sql) not found. "
            "Make sure you're running from the project root."
        )

    template = Template(schema_file.read_text())
    return template.render(
        schema_name=settings.postgres.schema_name,
        events_table=settings.postgres.events_table,
        traits_table=settings.traits.traits_table,
    )


@retry_standard(POSTGRES_RETRY_EXCEPTIONS, logger)
def check_schema_exists(settings: Settings | None = None) -> bool:
    """Check if the events table exists in the configured schema."""
    settings = settings or get_settings()
    with psycopg2.connect(settings.postgres.connection_string, connect_timeout=5) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT EXISTS (
                    SELECT FROM information_schema.tables
                    WHERE table_schema = %s
                    AND table_name = %s
                )
                """,
                (settings.postgres.schema_name, settings.postgres.events_table),
            )
            result = cur.fetchone()
            return bool(result[0]) if result else False


@retry_standard(POSTGRES_RETRY_EXCEPTIONS, logger)
def _apply(settings: Settings, schema_sql: str, drop_first: bool) -> None:
    with psycopg2.connect(settings.postgres.connection_string) as conn:
        with conn.cursor() as cur:
            if drop_first:
                cur.execute(
                    sql.SQL("DROP SCHEMA IF EXISTS {} CASCADE").format(
                        sql.Identifier(settings.postgres.schema_name)
                    )
                )
            cur.execute(schema_sql)
        conn.commit()


def ensure_schema(settings: Settings | None = None) -> bool:
    """
    Ensure the schema exists, initializing it if needed.

    Idempotent and safe to call multiple times.

    Returns:
        True if the schema was created, False if it already existed

    Raises:
        RuntimeError: If the schema file is missing or initialization fails
    """
    settings = settings or get_settings()
    if check_schema_exists(settings):
        return False

    schema_name = settings.postgres.schema_name
    logger.info("Initializing database schema '%s'...", schema_name)
    schema_sql = render_schema_sql(settings)
    try:
        _apply(settings, schema_sql, drop_first=False)
    except psycopg2.Error as e:
        raise RuntimeError(f"Failed to initialize schema: {e}") from e
    logger.info("Database schema '%s' initialized.", schema_name)
    return True


def reset_schema(settings: Settings | None = None) -> None:
    """
    Drop and recreate the schema.

    WARNING: This deletes all events and traits in the schema!
    """
    settings = settings or get_settings()
    schema_sql = render_schema_sql(settings)
    try:
        _apply(settings, schema_sql, drop_first=True)
    except psycopg2.Error as e:
        raise RuntimeError(f"Failed to reset schema: {e}") from e
    logger.info("Database schema '%s' reset.", settings.postgres.schema_name)
