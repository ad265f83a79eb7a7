# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.
"""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from journeys.core.models import INTERACTION_TYPES
from journeys.core.step_labels import DEFAULT_DRAFT_PREFIXES

# Load .env file before any settings are instantiated
load_dotenv()


class PostgresSettings(BaseSettings):
    """PostgreSQL connection settings for the analytic event store."""

    model_config = SettingsConfigDict(env_prefix="PG_")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL username")
    password: str = Field(default="postgres", description="PostgreSQL password")
    database: str = Field(default="analytics", description="Database name")
    schema_name: str = Field(default="analytics", description="Schema name")
    sslmode: str = Field(default="prefer", description="SSL mode")

    events_table: str = Field(default="events", description="Events table name")
    scan_batch_size: int = Field(
        default=5000, description="Rows fetched per round trip by streaming scans"
    )
    statement_timeout_ms: int = Field(
        default=60_000, description="Server-side timeout for one scan query (0 disables)"
    )

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        return (
            f"postgresql://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?sslmode={self.sslmode}"
        )


class TraitStoreSettings(BaseSettings):
    """PostgreSQL connection settings for the user traits store.

    Traits live in the relational application database, which is usually a
    different server from the analytic event store.
    """

    model_config = SettingsConfigDict(env_prefix="TRAITS_PG_")

    enabled: bool = Field(default=True, description="Enrich sessions with user traits")
    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL username")
    password: str = Field(default="postgres", description="PostgreSQL password")
    database: str = Field(default="app", description="Database name")
    schema_name: str = Field(default="analytics", description="Schema name")
    sslmode: str = Field(default="prefer", description="SSL mode")

    traits_table: str = Field(default="user_traits", description="Traits table name")
    timeout_ms: int = Field(
        default=2_000, description="Upper bound for one trait lookup (connect and query)"
    )

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        return (
            f"postgresql://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?sslmode={self.sslmode}"
        )


class JourneySettings(BaseSettings):
    """Journey analysis settings."""

    model_config = SettingsConfigDict(env_prefix="JOURNEYS_")

    draft_prefixes: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_DRAFT_PREFIXES),
        description="Path prefix -> fixed step label (JSON object)",
    )
    interaction_types: tuple[str, ...] = Field(
        default=INTERACTION_TYPES,
        description="Event types labeled by type and name instead of path (JSON array)",
    )
    max_histogram_rows: int = Field(
        default=500, description="Property rows returned by step drill-downs"
    )
    max_step_events: int = Field(
        default=100, description="Raw events returned by step drill-downs"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    traits: TraitStoreSettings = Field(default_factory=TraitStoreSettings)
    journeys: JourneySettings = Field(default_factory=JourneySettings)

    # General settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
