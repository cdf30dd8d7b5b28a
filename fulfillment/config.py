"""Configuration management for the fulfillment service."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    storage_backend: Literal["memory", "redis"] = Field(
        default="memory", description="Where orders and menus are kept"
    )
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")
    order_lock_timeout: float = Field(
        default=10.0, description="Seconds before a per-order lock expires"
    )
    order_lock_wait: float = Field(
        default=5.0, description="Seconds to wait for a per-order lock"
    )

    # API Configuration
    api_port: int = Field(default=8000, description="API server port")
    api_host: str = Field(default="0.0.0.0", description="API server host")

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="json", description="Log format")

    # Kitchen
    timezone: str = Field(default="Europe/Paris", description="Kitchen local timezone")
    local_city: str = Field(default="Bordeaux", description="City served at the flat fee")
    kitchen_lat: float = Field(default=44.8378, ge=-90, le=90)
    kitchen_lng: float = Field(default=-0.5792, ge=-180, le=180)

    # Pricing
    flat_local_fee: Decimal = Field(default=Decimal("5.00"), ge=0)
    per_km_rate: Decimal = Field(default=Decimal("0.59"), ge=0)
    bulk_discount_rate: Decimal = Field(default=Decimal("0.10"), ge=0, le=1)
    bulk_discount_margin: int = Field(
        default=5, description="Persons above the menu minimum that unlock the discount"
    )

    # Equipment loans
    equipment_threshold: int = Field(
        default=20, description="Headcount from which serving equipment is lent"
    )
    equipment_return_window_hours: int = Field(default=48)
    equipment_late_grace_hours: int = Field(default=0)
    equipment_penalty: Decimal = Field(default=Decimal("600.00"), ge=0)

    # Sweep
    sweep_interval_seconds: float = Field(
        default=300.0, description="Seconds between background sweeps"
    )
    sweep_enabled: bool = Field(default=True)

    # Geocoding
    geocoder: Literal["nominatim", "static"] = Field(default="static")
    geocoder_url: str = Field(default="https://nominatim.openstreetmap.org/search")
    geocoder_user_agent: str = Field(default="catering-fulfillment/0.1")
    geocoder_timeout: float = Field(default=5.0, description="Geocoding timeout in seconds")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
