# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration display for the journey analytics CLI.
"""

import json
from typing import Annotated

import typer

from journeys.cli.shared import C
from journeys.utils.config import get_settings


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (includes secrets in JSON mode)."""
    settings = get_settings()

    if json_output:
        config = {
            "postgresql": {
                "host": settings.postgres.host,
                "port": settings.postgres.port,
                "database": settings.postgres.database,
                "schema": settings.postgres.schema_name,
                "user": settings.postgres.user,
                "password": settings.postgres.password,
                "sslmode": settings.postgres.sslmode,
                "events_table": settings.postgres.events_table,
                "scan_batch_size": settings.postgres.scan_batch_size,
                "statement_timeout_ms": settings.postgres.statement_timeout_ms,
            },
            "traits": {
                "enabled": settings.traits.enabled,
                "host": settings.traits.host,
                "port": settings.traits.port,
                "database": settings.traits.database,
                "schema": settings.traits.schema_name,
                "user": settings.traits.user,
                "password": settings.traits.password,
                "traits_table": settings.traits.traits_table,
                "timeout_ms": settings.traits.timeout_ms,
            },
            "journeys": {
                "draft_prefixes": settings.journeys.draft_prefixes,
                "interaction_types": list(settings.journeys.interaction_types),
                "max_histogram_rows": settings.journeys.max_histogram_rows,
                "max_step_events": settings.journeys.max_step_events,
            },
            "log_level": settings.log_level,
        }
        print(json.dumps(config, indent=2))
        return

    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    print(f"{C.CYAN}Event Store (PostgreSQL){C.RESET}")
    print(f"  Host:       {C.WHITE}{settings.postgres.host}:{settings.postgres.port}{C.RESET}")
    print(f"  Database:   {C.WHITE}{settings.postgres.database}{C.RESET}")
    print(f"  Table:      {C.WHITE}{settings.postgres.schema_name}.{settings.postgres.events_table}{C.RESET}")
    print(f"  User:       {C.WHITE}{settings.postgres.user}{C.RESET}")
    print(f"  SSL:        {C.WHITE}{settings.postgres.sslmode}{C.RESET}")
    print(f"  Batch:      {C.WHITE}{settings.postgres.scan_batch_size:,} rows{C.RESET}")
    print(f"  Timeout:    {C.WHITE}{settings.postgres.statement_timeout_ms:,} ms{C.RESET}")
    print()

    print(f"{C.CYAN}Trait Store (PostgreSQL){C.RESET}")
    traits_status = "enabled" if settings.traits.enabled else "disabled"
    print(f"  Status:     {C.WHITE}{traits_status}{C.RESET}")
    print(f"  Host:       {C.WHITE}{settings.traits.host}:{settings.traits.port}{C.RESET}")
    print(f"  Database:   {C.WHITE}{settings.traits.database}{C.RESET}")
    print(f"  Table:      {C.WHITE}{settings.traits.schema_name}.{settings.traits.traits_table}{C.RESET}")
    print(f"  Timeout:    {C.WHITE}{settings.traits.timeout_ms:,} ms{C.RESET}")
    print()

    print(f"{C.CYAN}Journeys{C.RESET}")
    for prefix, label in sorted(settings.journeys.draft_prefixes.items()):
        print(f"  Draft:      {C.WHITE}{prefix}* -> {label}{C.RESET}")
    print(f"  Events:     {C.WHITE}{', '.join(settings.journeys.interaction_types)}{C.RESET}")
    print(f"  Max rows:   {C.WHITE}{settings.journeys.max_histogram_rows}{C.RESET}")
    print(f"  Max events: {C.WHITE}{settings.journeys.max_step_events}{C.RESET}")
    print()
