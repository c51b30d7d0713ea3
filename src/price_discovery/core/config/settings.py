"""Settings for the price discovery subsystem.

Values come from YAML files under ``config/`` (shared base files plus a
per-environment overlay), environment variables and a ``.env`` file. Secrets
such as API keys and the Redis password are only read from the environment.
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_source import MultiYamlConfigSettingsSource


if TYPE_CHECKING:
    from pydantic_settings import PydanticBaseSettingsSource


class MarketDataProvider(StrEnum):
    """Market data source variant selected at startup.

    - MOCK: Deterministic in-process data, no network
    - GOVERNMENT: Direct HTTP access to the mandi price provider
    - CACHED: HTTP provider wrapped by the cache-backed fallback orchestrator
    """

    MOCK = "mock"
    GOVERNMENT = "government"
    CACHED = "cached"


class AIProvider(StrEnum):
    """AI estimator variant selected at startup."""

    LLM = "llm"
    MOCK = "mock"


# =============================================================================
# Sections
# =============================================================================


class AppSettings(BaseModel):
    """Name and version reported in startup logs."""

    name: str = "Mandi Price Discovery"
    version: str = "0.1.0"
    debug: bool = False


class LoggingSettings(BaseModel):
    """Log level and output format (json or text)."""

    level: str = "INFO"
    format: str = "json"


class RedisSettings(BaseModel):
    """Redis connection and reconnection settings."""

    host: str = "localhost"
    port: int = 6379
    user: str | None = None  # ACL username
    cache_db: int = 0
    connect_timeout: float = 5.0
    max_reconnect_attempts: int = 5
    reconnect_base_delay: float = 0.1  # Doubles per attempt
    reconnect_max_delay: float = 3.0


class CacheSettings(BaseModel):
    """Market data cache TTLs (seconds)."""

    key_prefix: str = ""
    price_ttl: int = 1800
    historical_ttl_multiplier: int = 2
    metadata_ttl: int = 86400
    health_ttl: int = 300

    @property
    def historical_ttl(self) -> int:
        """TTL for historical series, derived from the price TTL."""
        return self.price_ttl * self.historical_ttl_multiplier


class MarketDataSettings(BaseModel):
    """Market data source configuration."""

    provider: MarketDataProvider = MarketDataProvider.CACHED
    base_url: str = "https://api.data.gov.in/resource/"
    timeout: float = 10.0
    health_timeout: float = 5.0
    max_retries: int = 3
    backoff_base: float = 1.0
    user_agent: str = "MultilingualMandi/1.0"
    market_timezone: str = "Asia/Kolkata"  # Local time for market-hours checks
    single_flight: bool = True


class PriceDiscoverySettings(BaseModel):
    """Price discovery engine configuration."""

    short_term_ttl: float = 300.0  # 5 minutes
    short_term_max_items: int = 1000
    estimation_history_days: int = Field(default=30, ge=1, le=365)
    sentiment_history_days: int = Field(default=30, ge=1, le=365)


class AISettings(BaseModel):
    """AI estimator configuration.

    The LLM provider speaks the OpenAI-compatible chat completions API.
    """

    enabled: bool = True
    provider: AIProvider = AIProvider.MOCK
    url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    timeout: float = 30.0
    max_retries: int = 2
    requests_per_minute: float = 30.0


# =============================================================================
# Settings
# =============================================================================


class Settings(BaseSettings):
    """Price discovery settings.

    Sources, highest priority first: constructor arguments, environment
    variables, ``.env``, ``config/environments/{APP_ENV}/*.yaml``,
    ``config/base/*.yaml``, then the defaults below. Nested sections are
    reachable from the environment with ``__``, e.g. ``AI__PROVIDER=llm``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        case_sensitive=False,
        env_nested_delimiter="__",
    )

    # =========================================================================
    # Environment Selection (from .env)
    # =========================================================================
    APP_ENV: str = "development"

    # =========================================================================
    # Nested Configuration Sections (from YAML)
    # =========================================================================
    app: AppSettings = AppSettings()
    logging: LoggingSettings = LoggingSettings()
    redis: RedisSettings = RedisSettings()
    cache: CacheSettings = CacheSettings()
    market_data: MarketDataSettings = MarketDataSettings()
    price_discovery: PriceDiscoverySettings = PriceDiscoverySettings()
    ai: AISettings = AISettings()

    # =========================================================================
    # Secrets (from .env only - never in YAML)
    # =========================================================================
    REDIS_PASSWORD: str = ""
    MARKET_DATA_API_KEY: str = ""
    AI_API_KEY: str = ""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Place the YAML files below the environment and above secret files."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            MultiYamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    # =========================================================================
    # Derived values
    # =========================================================================

    @property
    def redis_cache_url(self) -> str:
        """``redis://[user[:password]@]host:port/cache_db`` for the market data cache."""
        credentials = ""
        if self.redis.user or self.REDIS_PASSWORD:
            user = self.redis.user or ""
            password = f":{self.REDIS_PASSWORD}" if self.REDIS_PASSWORD else ""
            credentials = f"{user}{password}@"
        redis = self.redis
        return f"redis://{credentials}{redis.host}:{redis.port}/{redis.cache_db}"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_testing(self) -> bool:
        return self.APP_ENV == "test"


@lru_cache
def get_settings() -> Settings:
    """Process-wide Settings, loaded on first use."""
    return Settings()
