from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Security
    secret_key: str = "changeme"  # override in .env
    jwt_algorithm: str = "HS256"

    # Database
    database_url: str = "sqlite:///./hms_core.db"

    # Redis (per-doctor booking lock); in-process lock when unset
    redis_url: str | None = None
    doctor_lock_timeout_seconds: float = 10.0

    # Booking
    clinic_timezone: str = "Asia/Kolkata"
    appointment_duration_minutes: int = 30

    # Payments (Razorpay)
    payment_currency: str = "INR"
    razorpay_key_id: str | None = None
    razorpay_key_secret: str | None = None
    razorpay_base_url: str = "https://api.razorpay.com"
    payment_timeout_seconds: float = 10.0

    # Inventory
    expiry_alert_days: int = 30

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the .env is parsed once.
    """
    return Settings()
