"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from archery_log.services.clock import DEFAULT_REFERENCE_TIMEZONE

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    remote_backend: Literal["sheets", "supabase"] = "sheets"
    google_access_token: str | None = None
    spreadsheet_id: str | None = None
    spreadsheet_title: str = "Shoot With Ceech Log"
    sheets_base_url: str = "https://sheets.googleapis.com/v4"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    storage_path: str = ".archery_log/local.sqlite3"
    reference_timezone: str = DEFAULT_REFERENCE_TIMEZONE
    http_timeout_seconds: float = 15
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
