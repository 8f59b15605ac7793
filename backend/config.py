"""
Retail Analytics Engine - Configuration

Configuration using Pydantic Settings.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DiscoverySettings(BaseSettings):
    """Pattern discovery engine defaults."""

    model_config = SettingsConfigDict(env_prefix="DISCOVERY_")

    batch_size: int = Field(
        default=2000,
        description="Products processed per batch"
    )
    min_threshold: int = Field(
        default=50,
        description="Minimum occurrences for a word to survive consolidation"
    )
    max_patterns_per_round: int = Field(
        default=50,
        description="Maximum ranked patterns returned per pass"
    )
    confidence_threshold: float = Field(
        default=0.3,
        description="Minimum confidence for a ranked pattern"
    )
    include_fields: list[str] = Field(
        default=["title", "description", "categories", "keywords"],
        description="Product fields scanned for candidate words"
    )


class DataSettings(BaseSettings):
    """Flat-file data configuration."""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    data_dir: str = Field(
        default="./data/retail/orders",
        description="Root directory of the monthly scraper exports"
    )
    orders_suffix: str = Field(
        default="_orders.csv",
        description="File name suffix of the monthly orders export"
    )
    line_items_suffix: str = Field(
        default="_line-items.csv",
        description="File name suffix of the monthly line items export"
    )
    join_key: str = Field(
        default="order_id",
        description="Column joining line items to orders"
    )


class CacheSettings(BaseSettings):
    """Caching configuration."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    enabled: bool = Field(default=True, description="Enable caching")
    max_size: int = Field(default=128, description="LRU cache max size")
    ttl_seconds: int = Field(default=3600, description="Cache TTL in seconds")


class AnalyticsSettings(BaseSettings):
    """Metric calculation configuration."""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    default_velocity_days: int = Field(
        default=30,
        description="Days assumed by velocity when no date range is given"
    )
    top_n: int = Field(
        default=10,
        description="Entries returned by top performer lists"
    )
    secondary_sample_size: int = Field(
        default=10,
        description="Rows kept in the secondary metrics table"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Application
    app_name: str = "Retail Analytics Engine"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False, description="Debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # File Upload
    max_file_size_mb: int = Field(
        default=200,
        description="Maximum file size in MB"
    )
    upload_dir: str = Field(
        default="./uploads",
        description="Directory for session datasets"
    )
    log_dir: str = Field(
        default="logs",
        description="Directory for rotating log files"
    )

    # Session
    session_ttl_hours: int = Field(
        default=24,
        description="Session time-to-live in hours"
    )

    # Nested settings
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    data: DataSettings = Field(default_factory=DataSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
