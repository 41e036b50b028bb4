"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.

Components never read the environment themselves: they receive the
Settings object (via get_settings / FastAPI dependencies) at construction.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "jobportal"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    user_token_ttl_minutes: int = 60 * 24           # 1 day
    recruiter_token_ttl_minutes: int = 60 * 24 * 30  # 30 days

    # Cookies
    user_cookie_name: str = "token"
    recruiter_cookie_name: str = "jwt"
    cookie_domain: str = ""

    # One-time codes / reset tokens
    otp_ttl_minutes: int = 10
    reset_token_ttl_minutes: int = 10

    # SMTP (email delivery). Empty host = log instead of send.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    mail_from: str = ""

    # Twilio (SMS delivery). Empty SID = log instead of send.
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""

    # OAuth import (identity-provider webhook shared secret)
    oauth_import_secret: str = ""

    # App
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    frontend_url: str = "http://localhost:5173"
    cors_origins: str = (
        "http://localhost:5173,"
        "http://127.0.0.1:5173,"
        "http://localhost:3000"
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def expose_error_detail(self) -> bool:
        """Internal error text in 500 responses; never in production."""
        return self.debug and not self.is_production

    @property
    def cors_origin_list(self) -> List[str]:
        """Comma-separated CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user)

    @property
    def sms_enabled(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token)

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
