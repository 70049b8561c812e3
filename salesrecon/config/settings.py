"""
Sales Reconciliation Engine
Centralized Configuration Management

Process-level configuration using Pydantic settings with environment
variable support, validation, and type safety. The analytics section only
provides defaults: the live engine configuration is persisted alongside the
catalog (see ``salesrecon.domain.models.EngineConfig``).
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Persisted Store Configuration"""
    
    model_config = SettingsConfigDict(env_prefix="STORE_")
    
    backend: str = Field(default="file", description="Store backend: file, redis or memory")
    path: str = Field(default="./data/state.json", description="JSON document path for the file backend")
    key_prefix: str = Field(default="salesrecon", description="Key namespace for the redis backend")
    
    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate backend name"""
        allowed = ["file", "redis", "memory"]
        if v.lower() not in allowed:
            raise ValueError(f"Store backend must be one of: {allowed}")
        return v.lower()


class RedisSettings(BaseSettings):
    """Redis Store Configuration"""
    
    model_config = SettingsConfigDict(env_prefix="REDIS_")
    
    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    url: Optional[str] = Field(default=None, alias="REDIS_URL", description="Redis URL (overrides host/port)")
    
    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class AnalyticsSettings(BaseSettings):
    """Default analytics parameters used to seed a fresh engine configuration"""
    
    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")
    
    lookback_days: int = Field(default=30, ge=1, description="Velocity lookback window in days")
    critical_multiplier: float = Field(default=1.0, description="Runway below lead time x this is critical")
    warning_multiplier: float = Field(default=1.5, description="Runway below lead time x this is a warning")
    overstock_days: float = Field(default=120.0, description="Runway above this many days is overstock")
    gross_up_factor: float = Field(default=1.0, gt=0, description="Net to customer-facing gross price factor")
    include_incoming_stock: bool = Field(default=False, description="Count incoming shipments in runway")
    week_anchor_weekday: int = Field(default=4, ge=0, le=6, description="Weekday periods start on (0=Monday, 4=Friday)")
    default_lead_time_days: int = Field(default=30, ge=0, description="Lead time for newly created products")
    exclude_platforms_from_optimal_price: bool = Field(
        default=True,
        description="Skip excluded platforms when scanning history for the optimal price",
    )
    fee_outlier_ratio: float = Field(default=3.0, gt=1, description="Per-unit fee max / weighted mean that flags an outlier")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""
    
    model_config = SettingsConfigDict(env_prefix="")
    
    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings
    
    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )
    
    # Application
    app_name: str = Field(default="salesrecon", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")
    
    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")
    
    # Version
    version: str = Field(default="0.3.0", description="Application version")
    
    # Subsystem configurations
    storage: StorageSettings = Field(default_factory=StorageSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    
    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()
    
    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"
    
    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Uses LRU cache to ensure settings are only loaded once.
    
    Returns:
        Settings: Application settings instance
    """
    return Settings()
