# ==============================================================================
# Shared Utilities for CLI Commands
# ==============================================================================
"""
Shared utilities, constants, and helper functions used across CLI command modules.

This module provides:
- ANSI color codes and status icons
- Store construction (PostgreSQL, or JSON files loaded into memory)
- Rendering of handler responses (errors, JSON mode)
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer

from journeys.api.handlers import JourneyService
from journeys.base.repositories import EventStore, TraitStore
from journeys.utils.config import get_settings

# ==============================================================================
# ANSI Colors
# ==============================================================================


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"


class Icons:
    """Status icons using Unicode symbols."""

    CHECK = "✓"
    CROSS = "✗"
    WARN = "!"
    ARROW = "→"


# Module-level aliases for convenience
C, I = Colors, Icons


# ==============================================================================
# Store Helpers
# ==============================================================================


def check_db_connection() -> bool:
    """Check if the event store database is reachable."""
    from journeys.infrastructure.repositories import check_postgresql_connection

    return check_postgresql_connection()


def build_stores(
    site_id: str,
    events_file: Optional[Path] = None,
    traits_file: Optional[Path] = None,
) -> tuple[EventStore, Optional[TraitStore]]:
    """
    Build the event and trait stores for one command.

    With `events_file` the events are loaded into memory and no database is
    touched; traits then come only from `traits_file`. Otherwise both stores
    are the configured PostgreSQL databases.
    """
    from journeys.infrastructure.repositories import (
        InMemoryEventStore,
        InMemoryTraitStore,
        PostgreSQLEventStore,
        PostgreSQLTraitStore,
    )

    if events_file is not None:
        try:
            store = InMemoryEventStore.from_jsonl(events_file)
        except (OSError, ValueError) as e:
            raise typer.BadParameter(str(e), param_hint="--events-file") from e
        trait_store = None
        if traits_file is not None:
            try:
                trait_store = InMemoryTraitStore.from_json(traits_file, int(site_id))
            except (OSError, ValueError) as e:
                raise typer.BadParameter(str(e), param_hint="--traits-file") from e
        return store, trait_store

    settings = get_settings()
    trait_store = PostgreSQLTraitStore(settings) if settings.traits.enabled else None
    return PostgreSQLEventStore(settings), trait_store


@contextmanager
def journey_service(
    site_id: str,
    events_file: Optional[Path] = None,
    traits_file: Optional[Path] = None,
) -> Iterator[JourneyService]:
    """Yield a JourneyService over freshly built stores, closing them afterwards."""
    store, trait_store = build_stores(site_id, events_file, traits_file)
    try:
        yield JourneyService(store, trait_store)
    finally:
        store.close()
        if trait_store is not None:
            trait_store.close()


# ==============================================================================
# Output Helpers
# ==============================================================================


def exit_on_error(status: int, body: dict, json_output: bool) -> None:
    """Print a handler error and exit non-zero; no-op for a 200."""
    if status == 200:
        return
    if json_output:
        print(json.dumps({"status": status, **body}))
    else:
        print(f"\n{C.BRIGHT_RED}{I.CROSS} {body.get('error', 'Request failed')}{C.RESET}\n")
    raise typer.Exit(1)


def print_json(body: dict) -> None:
    print(json.dumps(body, indent=2))
