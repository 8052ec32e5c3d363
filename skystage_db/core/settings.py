# ==============================================================================
# SETTINGS CONFIGURATION - Environment Management
# ==============================================================================
# Pydantic Settings for type-safe environment variable management
# Resolved once per process; the database layer reads it at initialization
# ==============================================================================

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseProvider(str, Enum):
    """
    Supported storage backends.

    Attributes:
        SQLITE: Embedded file-based SQL database
        POSTGRESQL: Managed relational service
        SUPABASE: Managed BaaS (PostgREST + realtime)
    """
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    SUPABASE = "supabase"


class Environment(str, Enum):
    """Application environment types."""
    DEVELOPMENT = "development"
    TEST = "test"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Application Settings Configuration.

    Every key maps one-to-one onto an environment variable. Provider
    credentials are optional here on purpose: which of them are required
    depends on DATABASE_PROVIDER and is checked by
    ``DatabaseConfig.from_settings`` so that the error can name every
    missing key at once.

    Example:
        >>> from skystage_db.core.settings import settings
        >>> settings.DATABASE_PROVIDER
        'sqlite'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # --------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # --------------------------------------------------------------------------
    APP_NAME: str = Field(
        default="SkyStage Data Service",
        description="Application display name"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application semantic version"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Current deployment environment"
    )
    API_V1_PREFIX: str = Field(
        default="/api/v1",
        description="API version 1 route prefix"
    )

    # --------------------------------------------------------------------------
    # PROVIDER SELECTION
    # --------------------------------------------------------------------------
    # Kept as a plain string so an unsupported value reaches the
    # configuration validator instead of failing settings parsing.
    DATABASE_PROVIDER: str = Field(
        default=DatabaseProvider.SQLITE.value,
        description="Active backend (sqlite, postgresql, supabase)"
    )

    # --------------------------------------------------------------------------
    # SQLITE CONFIGURATION
    # --------------------------------------------------------------------------
    DATABASE_URL: Optional[str] = Field(
        default="./data/skystage.db",
        description="SQLite database file path or sqlite:// URL"
    )

    # --------------------------------------------------------------------------
    # POSTGRESQL CONFIGURATION
    # --------------------------------------------------------------------------
    POSTGRES_URL: Optional[str] = Field(
        default=None,
        description="Full PostgreSQL connection URL (overrides host/port/...)"
    )
    POSTGRES_HOST: str = Field(
        default="localhost",
        description="PostgreSQL server hostname"
    )
    POSTGRES_PORT: int = Field(
        default=5432,
        ge=1,
        le=65535,
        description="PostgreSQL server port"
    )
    POSTGRES_USER: str = Field(
        default="postgres",
        description="PostgreSQL username"
    )
    POSTGRES_PASSWORD: Optional[str] = Field(
        default=None,
        description="PostgreSQL password"
    )
    POSTGRES_DB: str = Field(
        default="postgres",
        description="PostgreSQL database name"
    )
    POSTGRES_SSL: bool = Field(
        default=False,
        description="Require TLS for PostgreSQL connections"
    )

    # --------------------------------------------------------------------------
    # SUPABASE CONFIGURATION
    # --------------------------------------------------------------------------
    SUPABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
        description="Supabase project URL"
    )
    SUPABASE_ANON_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"
        ),
        description="Supabase anonymous (RLS-restricted) key"
    )
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = Field(
        default=None,
        description="Supabase service role key (bypasses RLS)"
    )

    # --------------------------------------------------------------------------
    # CONNECTION POOL SETTINGS
    # --------------------------------------------------------------------------
    DB_POOL_MIN: int = Field(
        default=2,
        ge=1,
        le=100,
        description="Connections kept open in the pool"
    )
    DB_POOL_MAX: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Upper bound on pooled connections"
    )
    DB_POOL_IDLE_TIMEOUT: int = Field(
        default=30000,
        ge=1000,
        description="Idle connection recycle time in milliseconds"
    )
    DB_POOL_ACQUIRE_TIMEOUT: int = Field(
        default=60000,
        ge=100,
        description="Pool checkout timeout in milliseconds"
    )

    # --------------------------------------------------------------------------
    # TIMEOUTS & HEALTH
    # --------------------------------------------------------------------------
    DB_CONNECT_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        description="Initial connect timeout in seconds"
    )
    DB_PING_TIMEOUT: float = Field(
        default=5.0,
        gt=0,
        description="Ping round-trip timeout in seconds"
    )
    DB_HEALTH_LATENCY_THRESHOLD_MS: float = Field(
        default=1000.0,
        gt=0,
        description="Ping latency above which health is reported as degraded"
    )
    DB_SHUTDOWN_DRAIN_TIMEOUT: float = Field(
        default=10.0,
        ge=0,
        description="Seconds to wait for in-flight operations at shutdown"
    )
    DB_ECHO: bool = Field(
        default=False,
        description="Log emitted SQL statements"
    )

    # --------------------------------------------------------------------------
    # LOGGING CONFIGURATION
    # --------------------------------------------------------------------------
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    LOG_FORMAT: str = Field(
        default="text",
        description="Log format (json, text)"
    )

    # --------------------------------------------------------------------------
    # COMPUTED PROPERTIES
    # --------------------------------------------------------------------------
    @computed_field
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Returns:
        Settings: Cached settings instance
    """
    return Settings()


# Module-level settings instance for convenient imports
settings = get_settings()
