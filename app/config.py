"""Application configuration."""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMATS = ("json", "console")


class Settings(BaseSettings):
    """Settings read from the environment (and ``.env`` in development)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="CareConsult API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")
    database_pool_size: int = Field(default=10, ge=1, alias="DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(default=20, ge=0, alias="DATABASE_MAX_OVERFLOW")

    # Redis (optional: doctor profile cache and event fan-out)
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")

    # JWT; tokens are issued by the auth service, this API only verifies them
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # CORS
    cors_origins_str: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    # Scheduling
    slot_duration_minutes: int = Field(default=30, alias="SLOT_DURATION_MINUTES")
    patient_cancellation_window_hours: int = Field(
        default=24,
        ge=0,
        alias="PATIENT_CANCELLATION_WINDOW_HOURS",
    )
    default_doctor_timezone: str = Field(default="UTC", alias="DEFAULT_DOCTOR_TIMEZONE")
    reschedule_settle_minutes: int = Field(
        default=60,
        ge=1,
        alias="RESCHEDULE_SETTLE_MINUTES",
        description="Age after which an unconfirmed reschedule returns to scheduled",
    )

    # Appointment events
    events_redis_enabled: bool = Field(default=False, alias="EVENTS_REDIS_ENABLED")
    appointment_events_channel: str = Field(
        default="appointments:events",
        alias="APPOINTMENT_EVENTS_CHANNEL",
    )

    # Doctor profile cache
    doctor_cache_enabled: bool = Field(default=False, alias="DOCTOR_CACHE_ENABLED")
    doctor_cache_ttl: int = Field(default=900, ge=1, alias="DOCTOR_CACHE_TTL")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @field_validator("slot_duration_minutes")
    @classmethod
    def slot_divides_hour(cls, value: int) -> int:
        """Slots must tile an hour so every ``HH:00`` is on the grid."""
        if value <= 0 or 60 % value != 0:
            raise ValueError("SLOT_DURATION_MINUTES must be a positive divisor of 60")
        return value

    @field_validator("default_doctor_timezone")
    @classmethod
    def known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @field_validator("log_format")
    @classmethod
    def known_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_FORMATS:
            raise ValueError(f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}")
        return value

    @property
    def async_database_url(self) -> str:
        """``DATABASE_URL`` with the asyncpg driver selected."""
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
