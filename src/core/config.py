"""Application configuration and .env loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized runtime configuration."""

    database_path: str = Field(
        default="data/lighthouse.sqlite", validation_alias="DATABASE_PATH"
    )
    input_dir: str = Field(default="input", validation_alias="INPUT_DIR")

    # Lighthouse CLI 6.x to 9.x; 10+ no longer reports first-meaningful-paint or first-cpu-idle.
    lighthouse_path: str = Field(default="lighthouse", validation_alias="LIGHTHOUSE_PATH")
    chrome_path: str | None = Field(default=None, validation_alias="CHROME_PATH")
    chrome_flags: str = Field(
        default="--headless --no-sandbox", validation_alias="CHROME_FLAGS"
    )
    cpu_slowdown_multiplier: float = Field(
        default=4.0, ge=1.0, validation_alias="CPU_SLOWDOWN_MULTIPLIER"
    )
    audit_timeout: float = Field(default=300.0, gt=0, validation_alias="AUDIT_TIMEOUT")
    browser_startup_timeout: float = Field(
        default=30.0, gt=0, validation_alias="BROWSER_STARTUP_TIMEOUT"
    )

    default_interval_days: int = Field(
        default=30, ge=1, validation_alias="DEFAULT_INTERVAL_DAYS"
    )
    default_lifetime_days: int = Field(
        default=90, ge=1, validation_alias="DEFAULT_LIFETIME_DAYS"
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once from .env/environment."""
    return Settings()


__all__ = ["Settings", "get_settings"]
