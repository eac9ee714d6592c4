# salon/config.py

from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings


load_dotenv()


class AppSettings(BaseSettings):
    # Database (file-based SQLite unless overridden)
    database_url: str = Field(default="sqlite:///./salon.db", alias="DATABASE_URL")

    # Auth / JWT
    jwt_secret_key: str = Field(default="change-me-later", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Seed admin, only created when both are set
    admin_email: Optional[str] = Field(default=None, alias="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(default=None, alias="ADMIN_PASSWORD")

    # Studio
    studio_name: str = Field(default="Carol Amorim Studio", alias="STUDIO_NAME")
    # Slot dates/times are wall-clock values in this zone
    timezone: str = Field(default="America/Sao_Paulo", alias="TIMEZONE")

    # Email
    resend_api_key: Optional[str] = Field(default=None, alias="RESEND_API_KEY")
    email_from_address: str = Field(
        default="Carol Amorim Studio <noreply@carolamorimstudio.com>",
        alias="EMAIL_FROM_ADDRESS",
    )
    default_admin_notification_email: str = Field(
        default="contatocarolamorimstudio@gmail.com",
        alias="DEFAULT_ADMIN_NOTIFICATION_EMAIL",
    )

    # Sweeps
    sweeps_enabled: bool = Field(default=False, alias="SWEEPS_ENABLED")
    sweep_interval_seconds: int = Field(default=300, alias="SWEEP_INTERVAL_SECONDS")

    # Booking compensation retries before giving up on a stuck slot
    compensation_attempts: int = Field(default=3, alias="COMPENSATION_ATTEMPTS")

    allowed_origins: str = Field(default="http://localhost:5173", alias="ALLOWED_ORIGINS")

    environment: Literal["development", "production", "test"] = Field(
        default="development", alias="ENVIRONMENT"
    )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


settings = get_settings()
