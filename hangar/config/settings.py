"""Application Settings - Environment configuration for the booking API."""

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from the environment (or a local .env file).

    Tenant rows override the ``default_*`` booking values; these only fill
    columns left empty in ``business_settings``.
    """

    # Supabase (service key bypasses RLS for public micro-site writes)
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_key: str = ""

    # Evolution API (WhatsApp notifications)
    evolution_api_url: str = "http://localhost:8080"
    evolution_api_key: str = ""
    evolution_instance_name: str = "hangar"
    notification_max_retries: int = Field(2, ge=0)
    notification_retry_delay_seconds: float = Field(0.5, ge=0)

    # Booking defaults
    default_timezone: str = "America/Sao_Paulo"
    default_slot_interval_minutes: int = Field(60, gt=0)
    default_box_capacity: int = Field(1, ge=1)
    default_business_name: str = "CarbonCar"
    # Only used when a Hangar has no operating rules at all (new accounts)
    default_operating_days: list[dict[str, Any]] = Field(
        default_factory=lambda: [
            {"dayOfWeek": 0, "isOpen": False, "openTime": "00:00", "closeTime": "00:00"},
            *[
                {"dayOfWeek": dow, "isOpen": True, "openTime": "08:00", "closeTime": "18:00"}
                for dow in range(1, 6)
            ],
            {"dayOfWeek": 6, "isOpen": True, "openTime": "09:00", "closeTime": "14:00"},
        ]
    )

    # Observability
    service_name: str = "hangar-booking"
    jaeger_endpoint: str = "http://localhost:14268/api/traces"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Redis (Idempotency-Key of the booking form)
    redis_url: str = "redis://localhost:6379"
    idempotency_ttl_seconds: int = Field(3600, gt=0)

    # HTTP
    app_env: Literal["development", "staging", "production"] = "development"
    api_port: int = 8000
    api_host: str = "0.0.0.0"
    cors_origins: list[str] = Field(default_factory=list)

    # Feature flags
    enable_tracing: bool = True
    enable_notifications: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def allowed_origins(self) -> list[str]:
        """Micro-site origins allowed by CORS (anything in development)."""
        if self.is_development and not self.cors_origins:
            return ["*"]
        return self.cors_origins


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance (loaded once per process)."""
    return Settings()
