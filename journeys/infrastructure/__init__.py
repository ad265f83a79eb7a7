# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Adapters for external services (ports-and-adapters architecture).

This module contains concrete implementations of the base/ store interfaces:
- repositories/ - Event and trait stores (PostgreSQL, in-memory)
- sql.py - Compiles event scans into parameterized SQL
"""

from journeys.infrastructure.repositories import (
    InMemoryEventStore,
    InMemoryTraitStore,
    PostgreSQLEventStore,
    PostgreSQLTraitStore,
    check_postgresql_connection,
)

__all__ = [
    "InMemoryEventStore",
    "InMemoryTraitStore",
    "PostgreSQLEventStore",
    "PostgreSQLTraitStore",
    "check_postgresql_connection",
]
