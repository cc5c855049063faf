"""
Application configuration.
Values are read from environment variables, falling back to a local .env
file so development works without exporting anything.
"""
import logging
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    JWT_SECRET_KEY: str = ""
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days
    DATABASE_URL: str

    # Comma separated list of front-end origins (cookies need explicit origins)
    ALLOWED_ORIGINS: str = "http://localhost:5173"

    # Scheduling
    WORKDAY_START_HOUR: int = 9
    WORKDAY_END_HOUR: int = 18
    INSTITUTE_NAME: str = "Cabinet Pure Éclat"
    WALK_IN_EMAIL_DOMAIN: str = "walkin.pureeclat.fr"

    # Stripe payments
    STRIPE_API_KEY: str = ""
    STRIPE_PUBLISHABLE_KEY: str = ""
    STRIPE_CURRENCY: str = "eur"

    # SendGrid Email
    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = "noreply@pureeclat.fr"
    SENDGRID_FROM_NAME: str = "Pure Éclat"

    SEED_ON_STARTUP: bool = False

    class Config:
        env_file = ".env"

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


settings = Settings()

# Validate critical security settings
if not settings.JWT_SECRET_KEY:
    raise ValueError(
        "JWT_SECRET_KEY is not set. Export it or add it to .env. "
        "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
    )

if not 0 <= settings.WORKDAY_START_HOUR < settings.WORKDAY_END_HOUR <= 24:
    raise ValueError(
        f"Invalid working window {settings.WORKDAY_START_HOUR}h-{settings.WORKDAY_END_HOUR}h"
    )
