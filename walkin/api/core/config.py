"""Application configuration using Pydantic Settings"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from walkin.shared.business_hours import BusinessSchedule

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database (empty = in-memory stores, nothing persisted)
    database_url: str = Field(default="", description="PostgreSQL database URL")
    database_ssl: bool = Field(default=False, description="Require SSL for the database pool")
    run_migrations: bool = Field(default=True, description="Apply pending migrations on startup")

    # Environment
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    frontend_url: str = Field(default="http://localhost:5173", description="Frontend URL for CORS")

    # Admin access
    admin_gate: str = Field(default="header", description="Admin gate: 'header' or 'jwt'")
    admin_token: str = Field(default="", description="Shared secret for the X-Admin-Session header")
    jwt_secret_key: str = Field(default="", description="Secret key for admin JWT cookies")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    webhook_secret: str = Field(default="", description="X-Webhook-Secret for AI replies (empty = unchecked)")

    # Business hours
    business_timezone: str = Field(default="Europe/Amsterdam", description="Civil timezone of the shop")
    business_open_days: list[int] = Field(
        default=[0, 1, 2, 3, 4, 5], description="Open weekdays, Monday=0 .. Sunday=6"
    )
    business_open_hour: int = Field(default=10, description="Opening hour (24h)")
    business_close_hour: int = Field(default=19, description="Closing hour (24h)")

    # Queue
    minutes_per_customer: int = Field(default=15, ge=1, description="Wait estimate per waiting customer")
    snapshot_refresh_interval: float = Field(
        default=30.0, gt=0, description="Seconds between periodic snapshot broadcasts"
    )
    ws_max_pending: int = Field(default=100, ge=1, description="Outbound frame buffer per socket")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @field_validator("admin_gate")
    @classmethod
    def validate_admin_gate(cls, v: str) -> str:
        v = v.lower()
        if v not in ("header", "jwt"):
            raise ValueError("admin_gate must be 'header' or 'jwt'")
        return v

    @model_validator(mode="after")
    def validate_schedule(self) -> "Settings":
        # Fail at startup rather than on the first snapshot
        self.business_schedule  # noqa: B018
        if self.admin_gate == "jwt" and not self.jwt_secret_key:
            raise ValueError("jwt_secret_key is required when admin_gate is 'jwt'")
        return self

    @property
    def business_schedule(self) -> BusinessSchedule:
        return BusinessSchedule(
            open_days=frozenset(self.business_open_days),
            open_hour=self.business_open_hour,
            close_hour=self.business_close_hour,
            timezone=self.business_timezone,
        )

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS allowed origins"""
        return [self.frontend_url]

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
