# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract store contracts for the ports-and-adapters architecture.

The analytics components only ever see these interfaces; PostgreSQL and
in-memory adapters live in infrastructure/repositories/.
"""

from journeys.base.repositories import EventStore, TraitStore

__all__ = [
    "EventStore",
    "TraitStore",
]
