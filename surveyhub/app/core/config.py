"""Application configuration.

Defines `Settings` read from environment variables and the `.env` file.
"""
# app/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "SurveyHub"
    DEBUG: bool = False
    LOG_PATH: str = "logging"
    SECRET_KEY: str = "change-me-in-env"
    DATABASE_URL: str = "sqlite:///./surveyhub.db"

    ACCESS_TOKEN_TTL: int = 60 * 60 * 8  # 8h

    # When enabled, users must hold an active assignment to answer a non-public survey
    REQUIRE_ASSIGNMENT: bool = False
    # Restricts assignment-by-email placeholders to one domain, e.g. "@example.com"
    ASSIGNMENT_EMAIL_DOMAIN: str = ""
    CSV_MAX_BYTES: int = 5 * 1024 * 1024


settings = Settings()
