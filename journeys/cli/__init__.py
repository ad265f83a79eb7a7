# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for journey analytics.

Commands are organized into separate modules for maintainability:
- shared.py: Common utilities, constants, and helpers
- analytics.py: journeys, transitions and step-details queries
- db.py: Schema management
- config.py: Configuration display
"""

from journeys.cli.shared import (
    C,
    Colors,
    I,
    Icons,
    build_stores,
    check_db_connection,
    exit_on_error,
    journey_service,
    print_json,
)

__all__ = [
    "C",
    "Colors",
    "I",
    "Icons",
    "build_stores",
    "check_db_connection",
    "exit_on_error",
    "journey_service",
    "print_json",
]
