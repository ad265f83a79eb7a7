# ==============================================================================
# Store Adapters
# ==============================================================================
"""
Store adapters implementing the interfaces from base/repositories.py.

Currently supported:
- PostgreSQL (postgresql.py)
- In-memory (memory.py), for tests and file-backed CLI runs
"""

from journeys.infrastructure.repositories.memory import (
    InMemoryEventStore,
    InMemoryTraitStore,
)
from journeys.infrastructure.repositories.postgresql import (
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
