# ==============================================================================
# Journey Analytics Utilities
# ==============================================================================
"""
Shared utilities: configuration, retries and schema management.
"""

from journeys.utils.config import (
    JourneySettings,
    PostgresSettings,
    Settings,
    TraitStoreSettings,
    get_settings,
)
from journeys.utils.db import (
    ensure_schema,
    reset_schema,
)

__all__ = [
    # Config
    "JourneySettings",
    "PostgresSettings",
    "Settings",
    "TraitStoreSettings",
    "get_settings",
    # Database
    "ensure_schema",
    "reset_schema",
]
