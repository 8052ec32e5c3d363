# ==============================================================================
# DATABASE CONFIG - Provider Configuration Resolution
# ==============================================================================
# Turns Settings into a validated, provider-specific DatabaseConfig
# ==============================================================================

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

from skystage_db.core.exceptions import ConfigurationError
from skystage_db.core.settings import DatabaseProvider, Settings
from skystage_db.utils.helpers import redact_url


@dataclass(frozen=True)
class PoolConfig:
    """
    Connection pool sizing.

    Timeouts are kept in milliseconds, matching the environment keys.
    """
    min: int = 2
    max: int = 10
    idle_timeout_ms: int = 30000
    acquire_timeout_ms: int = 60000

    @property
    def max_overflow(self) -> int:
        return max(self.max - self.min, 0)

    @property
    def acquire_timeout(self) -> float:
        return self.acquire_timeout_ms / 1000

    @property
    def idle_timeout(self) -> float:
        return self.idle_timeout_ms / 1000


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Resolved configuration for one provider.

    Only the fields relevant to ``provider`` are populated. Build it with
    ``from_settings`` and check it with ``validate`` before handing it to
    the factory.
    """
    provider: str
    url: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    ssl: bool = False
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_key_source: Optional[str] = None
    pool: PoolConfig = field(default_factory=PoolConfig)
    connect_timeout: float = 10.0
    ping_timeout: float = 5.0
    latency_threshold_ms: float = 1000.0
    echo: bool = False

    # --------------------------------------------------------------------------
    # CONSTRUCTION
    # --------------------------------------------------------------------------

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseConfig":
        """
        Build a config from environment settings.

        The service role key wins over the anonymous key for Supabase.

        Raises:
            ConfigurationError: Unsupported provider or missing keys
        """
        provider = (settings.DATABASE_PROVIDER or "").strip().lower()
        common: Dict[str, Any] = dict(
            pool=PoolConfig(
                min=settings.DB_POOL_MIN,
                max=settings.DB_POOL_MAX,
                idle_timeout_ms=settings.DB_POOL_IDLE_TIMEOUT,
                acquire_timeout_ms=settings.DB_POOL_ACQUIRE_TIMEOUT,
            ),
            connect_timeout=settings.DB_CONNECT_TIMEOUT,
            ping_timeout=settings.DB_PING_TIMEOUT,
            latency_threshold_ms=settings.DB_HEALTH_LATENCY_THRESHOLD_MS,
            echo=settings.DB_ECHO,
        )

        if provider == DatabaseProvider.SQLITE.value:
            config = cls(provider=provider, url=settings.DATABASE_URL, **common)
        elif provider == DatabaseProvider.POSTGRESQL.value:
            config = cls(
                provider=provider,
                url=settings.POSTGRES_URL,
                host=settings.POSTGRES_HOST,
                port=settings.POSTGRES_PORT,
                database=settings.POSTGRES_DB,
                username=settings.POSTGRES_USER,
                password=settings.POSTGRES_PASSWORD,
                ssl=settings.POSTGRES_SSL,
                **common,
            )
        elif provider == DatabaseProvider.SUPABASE.value:
            if settings.SUPABASE_SERVICE_ROLE_KEY:
                key, source = settings.SUPABASE_SERVICE_ROLE_KEY, "service_role"
            else:
                key, source = settings.SUPABASE_ANON_KEY, "anon"
            config = cls(
                provider=provider,
                supabase_url=settings.SUPABASE_URL,
                supabase_key=key,
                supabase_key_source=source if key else None,
                **common,
            )
        else:
            config = cls(provider=provider, **common)

        config.validate()
        return config

    # --------------------------------------------------------------------------
    # VALIDATION
    # --------------------------------------------------------------------------

    def missing_keys(self) -> List[str]:
        """Environment keys the selected provider still needs."""
        missing: List[str] = []
        if self.provider == DatabaseProvider.SQLITE.value:
            if not self.url:
                missing.append("DATABASE_URL")
        elif self.provider == DatabaseProvider.POSTGRESQL.value:
            if not self.url and not self.password:
                missing.append("POSTGRES_PASSWORD")
        elif self.provider == DatabaseProvider.SUPABASE.value:
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_key:
                missing.append("SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY")
        return missing

    def validate(self) -> None:
        """
        Check provider support and required credentials.

        Raises:
            ConfigurationError: Naming the provider and every missing key
        """
        supported = [p.value for p in DatabaseProvider]
        if self.provider not in supported:
            raise ConfigurationError(
                message=(
                    f"Unsupported DATABASE_PROVIDER '{self.provider}'. "
                    f"Supported providers: {', '.join(supported)}"
                ),
                details={"provider": self.provider, "supported": supported},
            )

        missing = self.missing_keys()
        if missing:
            raise ConfigurationError(
                message=(
                    f"Missing configuration for provider '{self.provider}': "
                    f"set {', '.join(missing)}"
                ),
                missing_keys=missing,
                details={"provider": self.provider},
            )

        if self.pool.min > self.pool.max:
            raise ConfigurationError(
                message="DB_POOL_MIN must not exceed DB_POOL_MAX",
                details={"pool_min": self.pool.min, "pool_max": self.pool.max},
            )

    # --------------------------------------------------------------------------
    # DERIVED VALUES
    # --------------------------------------------------------------------------

    def sqlalchemy_url(self) -> str:
        """Async driver URL for the SQL providers."""
        if self.provider == DatabaseProvider.SQLITE.value:
            url = self.url or ""
            if url.startswith("sqlite+aiosqlite://"):
                return url
            if url.startswith("sqlite://"):
                return "sqlite+aiosqlite://" + url[len("sqlite://"):]
            if url == ":memory:":
                return "sqlite+aiosqlite:///:memory:"
            return f"sqlite+aiosqlite:///{url}"

        if self.provider == DatabaseProvider.POSTGRESQL.value:
            if self.url:
                for prefix in ("postgresql+asyncpg://", "postgresql://", "postgres://"):
                    if self.url.startswith(prefix):
                        return "postgresql+asyncpg://" + self.url[len(prefix):]
                return self.url
            password = quote_plus(self.password or "")
            return (
                f"postgresql+asyncpg://{self.username}:{password}"
                f"@{self.host}:{self.port}/{self.database}"
            )

        raise ConfigurationError(
            message=f"Provider '{self.provider}' has no SQL connection URL",
            details={"provider": self.provider},
        )

    def sqlite_path(self) -> Optional[Path]:
        """Filesystem path of the SQLite database, None for in-memory."""
        url = self.sqlalchemy_url()
        path = url[len("sqlite+aiosqlite:///"):]
        if not path or path == ":memory:":
            return None
        return Path(path)

    def with_provider(self, provider: str, **changes: Any) -> "DatabaseConfig":
        return replace(self, provider=provider, **changes)

    def redacted(self) -> Dict[str, Any]:
        """Config as a dict with secrets masked, for stats and logs."""
        data = asdict(self)
        if data.get("password"):
            data["password"] = "***"
        if data.get("supabase_key"):
            data["supabase_key"] = "***"
        data["url"] = redact_url(data.get("url"))
        return data
