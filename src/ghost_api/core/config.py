"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

import re
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="PostgreSQL async connection string",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # Geocoding: cache
    geocoder_cache_backend: Literal["database", "memory"] = Field(
        default="database",
        description="Content cache backend: persistent 'database' or process-local 'memory'",
    )

    # Geocoding: Nominatim (OpenStreetMap)
    geocoder_nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim base URL (self-hostable)",
    )
    geocoder_nominatim_timeout: float = Field(
        default=10.0,
        description="Nominatim request timeout in seconds",
        gt=0,
    )
    geocoder_nominatim_email: str = Field(
        default="",
        description="Email for Nominatim usage policy compliance",
    )
    geocoder_user_agent: str = Field(
        default="GHOST-OSINT-CRM/2.0 (OSINT Investigation Tool)",
        description="User-Agent header sent to the lookup provider",
    )
    geocoder_candidate_limit: int = Field(
        default=5,
        description="Candidates requested per provider lookup",
        gt=0,
        le=50,
    )

    # Geocoding: resolution and rate limiting
    geocoder_min_confidence: int = Field(
        default=30,
        description="Default minimum confidence (exclusive) for accepting a result",
        ge=0,
        le=100,
    )
    geocoder_max_concurrent: int = Field(
        default=3,
        description="Batch chunk size / maximum concurrent provider lookups",
        gt=0,
    )
    geocoder_call_delay_min: float = Field(
        default=1.0,
        description="Minimum delay in seconds before each provider call",
        ge=0,
    )
    geocoder_call_delay_max: float = Field(
        default=1.5,
        description="Maximum delay in seconds before each provider call",
        ge=0,
    )
    geocoder_chunk_delay: float = Field(
        default=2.0,
        description="Delay in seconds between batch chunks",
        ge=0,
    )
    geocoder_suggestion_limit: int = Field(
        default=5,
        description="Default number of autocomplete suggestions",
        gt=0,
        le=50,
    )

    @model_validator(mode="after")
    def validate_call_delay_range(self) -> "Settings":
        if self.geocoder_call_delay_max < self.geocoder_call_delay_min:
            msg = "geocoder_call_delay_max must be greater than or equal to geocoder_call_delay_min"
            raise ValueError(msg)
        return self

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )
    cors_origin_regex: str = Field(
        default="",
        description="Regex pattern for allowed CORS origins",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
