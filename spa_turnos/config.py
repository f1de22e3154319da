"""
Configuration Module

Manages application configuration using pydantic-settings.
Loads environment variables and provides typed configuration objects.
"""

from functools import lru_cache
from typing import List, Optional

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

    # REST backend
    api_base_url: str = Field(
        default="http://localhost:4000/api",
        description="Base URL of the spa REST backend",
    )
    api_service_url: Optional[str] = Field(
        default=None,
        description="Services endpoint (defaults to {api_base_url}/services)",
    )
    api_turno_url: Optional[str] = Field(
        default=None,
        description="Appointments endpoint (defaults to {api_base_url}/appointments)",
    )
    api_user_url: Optional[str] = Field(
        default=None,
        description="Users endpoint (defaults to {api_base_url}/users)",
    )
    api_payment_url: Optional[str] = Field(
        default=None,
        description="Payments endpoint (defaults to {api_base_url}/payments)",
    )

    # HTTP client behaviour
    request_timeout_seconds: float = Field(default=15.0, gt=0, le=120)
    max_retries: int = Field(default=3, ge=0, le=10)
    html_retry_step_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Backoff step when the backend answers with a cold-start HTML page",
    )
    network_retry_step_seconds: float = Field(
        default=3.0,
        ge=0,
        description="Backoff step after a connection failure",
    )
    unauthorized_dedupe_seconds: float = Field(default=5.0, ge=0, le=300)

    # Booking rules
    lead_time_hours: int = Field(default=48, ge=0, le=24 * 30)
    slot_times: List[str] = Field(
        default=["09:00", "10:00", "11:00", "12:00", "14:00", "15:00", "16:00", "17:00"],
        description="Fixed daily slot grid",
    )
    closed_weekdays: List[int] = Field(
        default=[6],
        description="Weekdays without service (Monday=0 ... Sunday=6)",
    )
    card_discount_rate: float = Field(default=0.15, ge=0.0, lt=1.0)

    # Session cookies (mirror the browser local storage keys)
    session_cookie_token: str = Field(default="token")
    session_cookie_user: str = Field(default="user")

    # Telegram FAQ bot
    telegram_bot_token: str = Field(
        default="",
        description="Telegram bot token from @BotFather for the FAQ bot",
    )
    telegram_webhook_url: Optional[str] = Field(
        default=None,
        description="Public webhook URL for Telegram updates",
    )
    webhook_secret_token: Optional[str] = Field(
        default=None,
        description="Secret token for webhook security",
        min_length=20,
    )

    # Application Settings
    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=8000, ge=1024, le=65535)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @field_validator(
        "api_base_url",
        "api_service_url",
        "api_turno_url",
        "api_user_url",
        "api_payment_url",
        mode="before",
    )
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """Endpoint paths are appended with a leading slash."""
        if isinstance(v, str):
            v = v.strip().rstrip("/")
            return v or None
        return v

    @field_validator("slot_times")
    @classmethod
    def validate_slot_times(cls, v: List[str]) -> List[str]:
        """Normalize slot times to zero-padded HH:MM."""
        normalized = []
        for value in v:
            hour, _, minute = value.strip().partition(":")
            if not hour.isdigit() or not minute.isdigit() or len(minute) != 2:
                raise ValueError(f"Invalid slot time: {value!r}")
            if int(hour) > 23 or int(minute) > 59:
                raise ValueError(f"Invalid slot time: {value!r}")
            normalized.append(f"{int(hour):02d}:{minute}")
        return normalized

    @property
    def services_url(self) -> str:
        return self.api_service_url or f"{self.api_base_url}/services"

    @property
    def appointments_url(self) -> str:
        return self.api_turno_url or f"{self.api_base_url}/appointments"

    @property
    def users_url(self) -> str:
        return self.api_user_url or f"{self.api_base_url}/users"

    @property
    def payments_url(self) -> str:
        return self.api_payment_url or f"{self.api_base_url}/payments"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure singleton pattern - settings are loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Export settings instance for convenience
settings = get_settings()
