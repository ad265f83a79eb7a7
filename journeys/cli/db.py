# ==============================================================================
# Database Commands
# ==============================================================================
"""
Schema management commands for the event store database.
"""

from typing import Annotated

import typer

from journeys.cli.shared import C, I, check_db_connection
from journeys.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def db_init() -> None:
    """Create the events and user traits tables if they do not exist.

    Examples:
        journeys db init
    """
    from journeys.utils.db import ensure_schema

    settings = get_settings()
    schema_name = settings.postgres.schema_name

    if not check_db_connection():
        print(f"{C.BRIGHT_RED}{I.CROSS} Cannot connect to PostgreSQL{C.RESET}")
        raise typer.Exit(1)

    try:
        created = ensure_schema(settings)
    except RuntimeError as e:
        print(f"{C.BRIGHT_RED}{I.CROSS} {e}{C.RESET}")
        raise typer.Exit(1)

    if created:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Schema '{schema_name}' initialized{C.RESET}")
    else:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Schema '{schema_name}' already exists{C.RESET}")


def db_reset(
    confirm: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
) -> None:
    """Drop and recreate the schema (deletes all events and traits).

    Examples:
        journeys db reset       # With confirmation prompt
        journeys db reset -y    # Skip confirmation
    """
    from journeys.utils.db import reset_schema

    settings = get_settings()
    schema_name = settings.postgres.schema_name

    if not confirm:
        typer.confirm(
            f"This will delete all data in schema '{schema_name}'. Continue?",
            abort=True,
        )

    if not check_db_connection():
        print(f"{C.BRIGHT_RED}{I.CROSS} Cannot connect to PostgreSQL{C.RESET}")
        raise typer.Exit(1)

    try:
        reset_schema(settings)
    except RuntimeError as e:
        print(f"{C.BRIGHT_RED}{I.CROSS} {e}{C.RESET}")
        raise typer.Exit(1)

    print(f"{C.BRIGHT_GREEN}{I.CHECK} Schema '{schema_name}' reset{C.RESET}")
